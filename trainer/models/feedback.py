"""
Feedback Report Models

The end-of-session report. Built once when a session completes.
"""

from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field


Grade = Literal["A", "B", "C", "D", "F"]
Trend = Literal["improving", "declining", "stable"]
Priority = Literal["high", "medium", "low"]


class DimensionFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    dimension: str
    average_score: int = Field(ge=0, le=100)
    trend: Trend = "stable"
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    priority: Priority
    recommendation: str
    action_items: list[str] = Field(default_factory=list)


class Resource(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["sop_section", "training_material", "script_template"]
    title: str
    description: str
    relevance: str


class CompletionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    steps_completed: int
    total_steps: int
    completion_rate: int = Field(ge=0, le=100)
    critical_error_count: int
    completion_reason: str


class FeedbackReport(BaseModel):
    """Performance summary for one completed session."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    overall_score: int = Field(ge=0, le=100)
    grade: Grade
    summary: str
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    dimensions: list[DimensionFeedback] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    completion: CompletionSummary
    critical_errors: list[str] = Field(default_factory=list)
    is_fallback: bool = Field(default=False, description="True when built without the narrative generator")
    generated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def trends(self) -> dict[str, str]:
        return {item.dimension: item.trend for item in self.dimensions}

"""
Scoring Evidence Models

Five-dimension scores with supporting evidence for a single trainee turn.
Every score is clamped into [0, 100] at construction time.
"""

import math
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


Dimension = Literal[
    "policy_adherence",
    "empathy_index",
    "completeness",
    "escalation_judgment",
    "time_efficiency",
]

DIMENSIONS: tuple[Dimension, ...] = (
    "policy_adherence",
    "empathy_index",
    "completeness",
    "escalation_judgment",
    "time_efficiency",
)

DIMENSION_WEIGHTS: dict[str, float] = {
    "policy_adherence": 0.25,
    "empathy_index": 0.20,
    "completeness": 0.25,
    "escalation_judgment": 0.15,
    "time_efficiency": 0.15,
}

# What the negative items of each dimension are called
ISSUE_KINDS: dict[str, str] = {
    "policy_adherence": "violations",
    "empathy_index": "missed_opportunities",
    "completeness": "missing_elements",
    "escalation_judgment": "inappropriate_actions",
    "time_efficiency": "inefficiencies",
}

DEFAULT_SCORE = 50
UNAVAILABLE_EVIDENCE = "Analysis unavailable"


def clamp_score(value: object, default: int = DEFAULT_SCORE) -> int:
    """
    Coerce an upstream score into an integer in [0, 100].

    Non-numeric and non-finite values fall back to the default.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    return int(max(0, min(100, round(value))))


class DimensionEvidence(BaseModel):
    """Score, evidence and issues for one dimension of one turn."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(default=DEFAULT_SCORE, description="Score in [0, 100]")
    evidence: list[str] = Field(default_factory=list, description="Positive evidence")
    issues: list[str] = Field(default_factory=list, description="Dimension-specific negative items")
    parsed: bool = Field(default=True, description="False when the score was defaulted")

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: object) -> int:
        return clamp_score(value)

    @classmethod
    def unavailable(cls) -> "DimensionEvidence":
        return cls(score=DEFAULT_SCORE, evidence=[UNAVAILABLE_EVIDENCE], issues=[], parsed=False)


class ScoringEvidence(BaseModel):
    """Evidence for all five dimensions of one trainee turn."""

    model_config = ConfigDict(frozen=True)

    policy_adherence: DimensionEvidence = Field(default_factory=DimensionEvidence.unavailable)
    empathy_index: DimensionEvidence = Field(default_factory=DimensionEvidence.unavailable)
    completeness: DimensionEvidence = Field(default_factory=DimensionEvidence.unavailable)
    escalation_judgment: DimensionEvidence = Field(default_factory=DimensionEvidence.unavailable)
    time_efficiency: DimensionEvidence = Field(default_factory=DimensionEvidence.unavailable)

    def dimension(self, name: str) -> DimensionEvidence:
        return getattr(self, name)

    @property
    def scores(self) -> dict[str, int]:
        return {name: self.dimension(name).score for name in DIMENSIONS}

    @property
    def overall(self) -> int:
        return round(sum(self.dimension(name).score * weight for name, weight in DIMENSION_WEIGHTS.items()))

    @property
    def fully_defaulted(self) -> bool:
        return not any(self.dimension(name).parsed for name in DIMENSIONS)

    @classmethod
    def unavailable(cls) -> "ScoringEvidence":
        return cls()


class TurnAssessment(BaseModel):
    """Everything the scoring engine derives from one trainee turn."""

    model_config = ConfigDict(frozen=True)

    evidence: ScoringEvidence
    critical_errors: list[str] = Field(default_factory=list)
    completed_steps: list[str] = Field(default_factory=list, description="Steps satisfied this turn")
    fallback_used: bool = False
    retrieved_context: list[str] = Field(default_factory=list)
    error: Optional[str] = None

"""
Message Models

Models for conversation messages and the session DTOs returned to callers.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """Individual message in a training conversation."""

    model_config = ConfigDict(frozen=True)

    role: Literal["trainee", "guest"] = Field(description="Role of the message sender")
    content: str = Field(description="Message content text")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="When the message was created")
    emotion: Optional[str] = Field(default=None, description="Guest emotion when the message was produced")


def create_trainee_message(content: str) -> Message:
    return Message(role="trainee", content=content)


def create_guest_message(content: str, emotion: Optional[str] = None) -> Message:
    return Message(role="guest", content=content, emotion=emotion)


# Caller-facing DTOs

class SessionProgress(BaseModel):
    completed_steps: list[str]
    required_steps: list[str]
    completed_count: int
    required_count: int
    percentage: float


class LatestScores(BaseModel):
    policy_adherence: int
    empathy_index: int
    completeness: int
    escalation_judgment: int
    time_efficiency: int
    overall: int


class SessionView(BaseModel):
    """Data transfer object for session status. Never carries raw evidence."""

    session_id: str
    status: str
    paused: bool
    expired: bool = False
    turn_count: int
    max_turns: int
    progress: SessionProgress
    latest_scores: Optional[LatestScores] = None
    critical_error_count: int
    duration_seconds: int
    completion_reason: Optional[str] = None
    last_guest_message: Optional[str] = None
    scenario_title: Optional[str] = None
    persona_name: Optional[str] = None

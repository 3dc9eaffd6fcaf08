"""
Session State Models

Immutable session state for a training session. Every transition is a pure
function that validates the move and returns a new SessionState.

Lifecycle: creating -> active -> complete, never backward.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
import uuid

from trainer.exceptions import StateTransitionError, SessionPausedError
from trainer.models.evidence import ScoringEvidence, TurnAssessment
from trainer.models.messages import Message
from trainer.models.scenario import Persona, Scenario


SessionStatus = Literal["creating", "active", "complete"]
CompletionReason = Literal[
    "all-steps-completed",
    "critical-error-threshold",
    "max-turns-reached",
    "natural-conclusion",
    "force-completed",
]


class CompletionDecision(BaseModel):
    """Whether a session should terminate, and the single reason why."""

    model_config = ConfigDict(frozen=True)

    should_terminate: bool
    reason: Optional[CompletionReason] = None

    @classmethod
    def keep_going(cls) -> "CompletionDecision":
        return cls(should_terminate=False)


class SessionState(BaseModel):
    """Complete state of a single training session."""

    model_config = ConfigDict(frozen=True)

    # Identification
    session_id: str = Field(
        default_factory=lambda: f"train_{uuid.uuid4().hex[:12]}",
        description="Unique session identifier",
    )
    user_id: str = Field(default="anonymous")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    # Lifecycle
    status: SessionStatus = "creating"
    paused: bool = False
    completion_reason: Optional[CompletionReason] = None

    # Exercise definition
    scenario: Optional[Scenario] = None
    persona: Optional[Persona] = None
    max_turns: int = Field(default=20, ge=1)

    # Progress (append-only / monotonic)
    turn_count: int = Field(default=0, ge=0)
    required_steps: tuple[str, ...] = ()
    completed_steps: tuple[str, ...] = ()
    critical_errors: tuple[str, ...] = ()
    score_history: tuple[ScoringEvidence, ...] = ()
    conversation: tuple[Message, ...] = ()
    fallback_count: int = Field(default=0, description="Generative calls served by a fallback producer")

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def is_complete(self) -> bool:
        return self.status == "complete"

    @property
    def latest_evidence(self) -> Optional[ScoringEvidence]:
        return self.score_history[-1] if self.score_history else None

    @property
    def progress_percentage(self) -> float:
        if not self.required_steps:
            return 0.0
        return round(len(self.completed_steps) / len(self.required_steps) * 100, 1)

    @property
    def duration_seconds(self) -> int:
        if not self.started_at:
            return 0
        end = self.completed_at or self.updated_at
        return max(0, int((end - self.started_at).total_seconds()))

    @property
    def last_guest_message(self) -> Optional[Message]:
        for message in reversed(self.conversation):
            if message.role == "guest":
                return message
        return None

    def get_current_turn_id(self) -> str:
        return f"turn_{self.turn_count + 1}"


def create_session(user_id: str = "anonymous", max_turns: int = 20) -> SessionState:
    """Create a new session waiting for its scenario and persona."""
    return SessionState(user_id=user_id or "anonymous", max_turns=max_turns)


def activate_session(
    state: SessionState,
    scenario: Scenario,
    persona: Persona,
    opening_message: Optional[Message] = None,
    fallbacks_used: int = 0,
) -> SessionState:
    """creating -> active, once both scenario and persona exist."""
    if state.status != "creating":
        raise StateTransitionError(state.status, "active", "session has already been started")

    now = datetime.utcnow()
    return state.model_copy(update={
        "status": "active",
        "scenario": scenario,
        "persona": persona,
        "required_steps": tuple(scenario.required_steps),
        "conversation": (opening_message,) if opening_message else (),
        "started_at": now,
        "updated_at": now,
        "fallback_count": state.fallback_count + fallbacks_used,
    })


def record_turn(
    state: SessionState,
    trainee_message: Message,
    assessment: TurnAssessment,
    guest_message: Message,
    fallbacks_used: int = 0,
) -> SessionState:
    """active -> active: fold one accepted trainee turn into the state."""
    ensure_accepting_turns(state)

    done = set(state.completed_steps) | {
        step for step in assessment.completed_steps if step in state.required_steps
    }
    return state.model_copy(update={
        "turn_count": state.turn_count + 1,
        "completed_steps": tuple(step for step in state.required_steps if step in done),
        "critical_errors": state.critical_errors + tuple(assessment.critical_errors),
        "score_history": state.score_history + (assessment.evidence,),
        "conversation": state.conversation + (trainee_message, guest_message),
        "updated_at": datetime.utcnow(),
        "fallback_count": state.fallback_count + fallbacks_used,
    })


def complete_session(state: SessionState, reason: CompletionReason) -> SessionState:
    """active -> complete. The completion reason is recorded exactly once."""
    if state.status != "active":
        raise StateTransitionError(state.status, "complete", "only an active session can be completed")

    now = datetime.utcnow()
    return state.model_copy(update={
        "status": "complete",
        "completion_reason": reason,
        "paused": False,
        "completed_at": now,
        "updated_at": now,
    })


def pause_session(state: SessionState) -> SessionState:
    if state.status != "active":
        raise StateTransitionError(state.status, "paused", "only an active session can be paused")
    return state.model_copy(update={"paused": True, "updated_at": datetime.utcnow()})


def resume_session(state: SessionState) -> SessionState:
    if state.status != "active" or not state.paused:
        raise StateTransitionError(state.status, "active", "session is not paused")
    return state.model_copy(update={"paused": False, "updated_at": datetime.utcnow()})


def ensure_accepting_turns(state: SessionState) -> None:
    """Raise unless the session can take another trainee turn."""
    if state.status != "active":
        raise StateTransitionError(state.status, "active", "session is not accepting turns")
    if state.paused:
        raise SessionPausedError(state.session_id)
    if state.turn_count >= state.max_turns:
        raise StateTransitionError(state.status, "active", "maximum turns already reached")

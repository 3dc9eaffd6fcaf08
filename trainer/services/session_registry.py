"""
Session Registry

Tracks concurrent training sessions by id. Each session has its own
asyncio.Lock so only one operation per session is in flight at a time;
sessions never wait on each other.

The registry is an ordinary object owned by whoever creates it (the FastAPI
app stores one on app.state). There is no module-level instance.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from config import Settings
from trainer.exceptions import (
    SessionExpiredError,
    SessionNotFoundError,
    StateTransitionError,
)
from trainer.models.agent_logs import AgentLogEntry
from trainer.models.evidence import DIMENSIONS
from trainer.models.feedback import FeedbackReport
from trainer.models.messages import LatestScores, SessionProgress, SessionView
from trainer.models.scenario import ScenarioRequest
from trainer.models.session_state import (
    SessionState,
    create_session,
    pause_session,
    resume_session,
)
from trainer.orchestration.orchestrator import TrainingOrchestrator
from trainer.utils.feedback_utils import DIMENSION_LABELS

logger = logging.getLogger("trainer.registry")


def build_session_view(state: SessionState, expired: bool = False) -> SessionView:
    """
    Caller-facing snapshot of a session. Pure: same inputs, same view.

    Expiry is registry bookkeeping, not session state, so the registry
    passes it in; an expired session keeps the status it had when it idled out.
    """
    latest = state.latest_evidence
    latest_scores = None
    if latest is not None:
        latest_scores = LatestScores(**latest.scores, overall=latest.overall)

    last_guest = state.last_guest_message
    return SessionView(
        session_id=state.session_id,
        status=state.status,
        paused=state.paused,
        expired=expired,
        turn_count=state.turn_count,
        max_turns=state.max_turns,
        progress=SessionProgress(
            completed_steps=list(state.completed_steps),
            required_steps=list(state.required_steps),
            completed_count=len(state.completed_steps),
            required_count=len(state.required_steps),
            percentage=state.progress_percentage,
        ),
        latest_scores=latest_scores,
        critical_error_count=len(state.critical_errors),
        duration_seconds=state.duration_seconds,
        completion_reason=state.completion_reason,
        last_guest_message=last_guest.content if last_guest else None,
        scenario_title=state.scenario.title if state.scenario else None,
        persona_name=state.persona.name if state.persona else None,
    )


class _SessionEntry:
    """Registry slot for one session."""

    def __init__(self, state: SessionState, now: datetime):
        self.state = state
        self.lock = asyncio.Lock()
        self.last_activity = now
        self.report: Optional[FeedbackReport] = None
        self.expired = False


class SessionRegistry:
    """Creates, advances and expires training sessions."""

    def __init__(
        self,
        orchestrator: TrainingOrchestrator,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.orchestrator = orchestrator
        self.settings = settings
        self._clock = clock
        self._sessions: Dict[str, _SessionEntry] = {}
        self._timeout = timedelta(minutes=settings.session_timeout_minutes)

    # Lookup helpers

    def _get_entry(self, session_id: str) -> _SessionEntry:
        entry = self._sessions.get(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        return entry

    def _check_expiry(self, entry: _SessionEntry) -> bool:
        """Mark the entry expired once it has idled past the timeout."""
        if not entry.expired and not entry.state.is_complete:
            if self._clock() - entry.last_activity > self._timeout:
                entry.expired = True
        return entry.expired

    def _view(self, entry: _SessionEntry) -> SessionView:
        return build_session_view(entry.state, expired=self._check_expiry(entry))

    def _get_live_entry(self, session_id: str) -> _SessionEntry:
        """Entry that may still change; expired sessions are rejected."""
        entry = self._get_entry(session_id)
        if self._check_expiry(entry):
            raise SessionExpiredError(
                session_id, (entry.last_activity + self._timeout).isoformat()
            )
        return entry

    def _touch(self, entry: _SessionEntry, state: SessionState) -> None:
        entry.state = state
        entry.last_activity = self._clock()

    # Lifecycle

    def create_session(self, user_id: str = "anonymous") -> str:
        state = create_session(user_id, max_turns=self.settings.max_turns)
        self._sessions[state.session_id] = _SessionEntry(state, self._clock())
        logger.info(f"Session created: {state.session_id} user={state.user_id}")
        return state.session_id

    async def start_session(self, session_id: str, request: ScenarioRequest) -> SessionView:
        entry = self._get_live_entry(session_id)
        async with entry.lock:
            result = await self.orchestrator.start_session(entry.state, request)
            self._touch(entry, result.state)
            return self._view(entry)

    async def continue_session(self, session_id: str, message: str) -> SessionView:
        entry = self._get_live_entry(session_id)
        async with entry.lock:
            result = await self.orchestrator.process_turn(entry.state, message)
            self._touch(entry, result.state)
            if result.report is not None:
                entry.report = result.report
            return self._view(entry)

    def get_session_status(self, session_id: str) -> SessionView:
        return self._view(self._get_entry(session_id))

    async def complete_session(self, session_id: str) -> FeedbackReport:
        """
        Force-complete a session and return its feedback.

        A session that already completed returns its existing report.
        """
        entry = self._get_entry(session_id)
        async with entry.lock:
            if entry.state.is_complete and entry.report is not None:
                return entry.report
            if entry.state.status == "creating":
                raise StateTransitionError(
                    "creating", "complete", "session has no scenario yet"
                )
            state, report = await self.orchestrator.finalize(entry.state, "force-completed")
            self._touch(entry, state)
            entry.report = report
            return report

    async def pause_session(self, session_id: str) -> SessionView:
        entry = self._get_live_entry(session_id)
        async with entry.lock:
            self._touch(entry, pause_session(entry.state))
            logger.info(f"Session paused: {session_id}")
            return self._view(entry)

    async def resume_session(self, session_id: str) -> SessionView:
        entry = self._get_live_entry(session_id)
        async with entry.lock:
            self._touch(entry, resume_session(entry.state))
            logger.info(f"Session resumed: {session_id}")
            return self._view(entry)

    def cleanup_expired(self) -> int:
        """
        Mark idle sessions as expired and drop long-expired ones.

        Returns:
            Number of sessions newly marked expired
        """
        now = self._clock()
        newly_expired = 0
        for session_id, entry in list(self._sessions.items()):
            idle = now - entry.last_activity
            if idle > self._timeout * 2 and (entry.expired or entry.state.is_complete):
                del self._sessions[session_id]
                self.orchestrator.agent_logs.clear_session(session_id)
                continue
            if not entry.expired and not entry.state.is_complete and idle > self._timeout:
                entry.expired = True
                newly_expired += 1

        if newly_expired:
            logger.info(f"Expired {newly_expired} idle sessions")
        return newly_expired

    # Read-only views

    def get_stats(self) -> Dict[str, int]:
        entries = list(self._sessions.values())
        return {
            "active": sum(1 for e in entries if e.state.is_active and not e.expired),
            "completed": sum(1 for e in entries if e.state.is_complete),
            "paused": sum(1 for e in entries if e.state.paused),
            "expired": sum(1 for e in entries if e.expired),
            "total": len(entries),
        }

    def get_completed_sessions(self, user_id: str) -> List[SessionView]:
        return [
            self._view(entry)
            for entry in self._sessions.values()
            if entry.state.user_id == user_id and entry.state.is_complete
        ]

    def get_feedback(self, session_id: str) -> FeedbackReport:
        entry = self._get_entry(session_id)
        if entry.report is None:
            raise StateTransitionError(
                entry.state.status, "complete", "feedback exists only for completed sessions"
            )
        return entry.report

    def get_agent_logs(
        self,
        session_id: str,
        turn_id: Optional[str] = None,
        agent_name: Optional[str] = None,
    ) -> List[AgentLogEntry]:
        self._get_entry(session_id)
        return self.orchestrator.agent_logs.get_logs(session_id, turn_id=turn_id, agent_name=agent_name)

    def export_transcript(self, session_id: str) -> str:
        """Plain-text transcript ending with the final score lines."""
        entry = self._get_entry(session_id)
        state = entry.state

        lines = [
            f"Training Session: {state.session_id}",
            f"Scenario: {state.scenario.title if state.scenario else 'not started'}",
            f"Guest: {state.persona.name if state.persona else 'not started'}",
            f"Status: {state.status}"
            + (f" ({state.completion_reason})" if state.completion_reason else ""),
            "",
        ]
        guest_name = state.persona.name if state.persona else "Guest"
        for message in state.conversation:
            if message.role == "trainee":
                lines.append(f"Trainee: {message.content}")
            else:
                emotion = f" [{message.emotion}]" if message.emotion else ""
                lines.append(f"{guest_name}{emotion}: {message.content}")

        lines.append("")
        lines.append("Final Scores")
        if entry.report is not None:
            scores = {item.dimension: item.average_score for item in entry.report.dimensions}
            overall, grade = entry.report.overall_score, entry.report.grade
        elif state.latest_evidence is not None:
            scores = state.latest_evidence.scores
            overall, grade = state.latest_evidence.overall, None
        else:
            scores, overall, grade = {}, None, None

        for dimension in DIMENSIONS:
            if dimension in scores:
                lines.append(f"{DIMENSION_LABELS[dimension]}: {scores[dimension]}")
        if overall is not None:
            lines.append(f"Overall: {overall}" + (f" ({grade})" if grade else ""))
        else:
            lines.append("No turns scored")
        return "\n".join(lines)

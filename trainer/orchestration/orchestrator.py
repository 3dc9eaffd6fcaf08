"""
Training Orchestrator

Runs one training session turn by turn:
score -> guest reply -> state update -> completion check -> feedback.

Every generative step has a deterministic fallback, so a turn only fails
when the caller violates the session state machine.
"""

import time
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel

from config import Settings, get_settings
from shared.services.llm_service import LLMService
from trainer.agents.feedback_writer import FeedbackWriterAgent
from trainer.agents.guest_simulator import GuestSimulatorAgent
from trainer.agents.persona_generator import PersonaGeneratorAgent
from trainer.agents.scenario_creator import ScenarioCreatorAgent
from trainer.agents.silent_scorer import SilentScorerAgent
from trainer.exceptions import StateTransitionError
from trainer.models.agent_logs import AgentLogEntry, AgentLogStore
from trainer.models.feedback import FeedbackReport
from trainer.models.messages import create_guest_message, create_trainee_message
from trainer.models.scenario import ScenarioRequest
from trainer.models.session_state import (
    CompletionDecision,
    CompletionReason,
    SessionState,
    activate_session,
    complete_session,
    ensure_accepting_turns,
    record_turn,
)
from trainer.services.feedback_aggregator import FeedbackAggregator
from trainer.services.guest_responder import GuestResponder, GuestResponse
from trainer.services.retrieval_service import NullRetrievalService, RetrievalService
from trainer.services.scoring_engine import ScoringEngine
from trainer.services.session_factory import SessionFactory
from trainer.utils.completion_policy import evaluate_completion

logger = logging.getLogger("trainer.orchestrator")


class TurnResult(BaseModel):
    """Result of processing one trainee turn."""

    state: SessionState
    guest_response: GuestResponse
    decision: CompletionDecision
    report: Optional[FeedbackReport] = None


class StartResult(BaseModel):
    """Result of starting a session."""

    state: SessionState
    guest_response: GuestResponse
    scenario_source: str
    persona_source: str


class TrainingOrchestrator:
    """
    Central orchestrator for training sessions.

    Holds no session state of its own: every method takes a SessionState and
    returns a new one.
    """

    def __init__(
        self,
        llm_service: LLMService,
        settings: Optional[Settings] = None,
        retrieval: Optional[RetrievalService] = None,
        log_store: Optional[AgentLogStore] = None,
    ):
        self.llm = llm_service
        self.settings = settings or get_settings()
        self.retrieval = retrieval or NullRetrievalService()
        self.agent_logs = log_store or AgentLogStore()

        timeout = self.settings.generation_timeout_seconds
        self.factory = SessionFactory(
            ScenarioCreatorAgent(self.llm, timeout, self.settings.scenario_temperature),
            PersonaGeneratorAgent(self.llm, timeout, self.settings.persona_temperature),
            self.retrieval,
        )
        self.guest = GuestResponder(
            GuestSimulatorAgent(self.llm, timeout, self.settings.guest_temperature)
        )
        self.scoring = ScoringEngine(
            SilentScorerAgent(self.llm, timeout, self.settings.scoring_temperature),
            self.retrieval,
        )
        self.feedback = FeedbackAggregator(
            FeedbackWriterAgent(self.llm, timeout, self.settings.feedback_temperature),
            self.retrieval,
        )

        logger.info("TrainingOrchestrator initialized")

    def _log_agent_event(
        self,
        session_id: str,
        turn_id: str,
        agent_name: str,
        event_type: str,
        fallback_used: bool = False,
        duration_ms: Optional[int] = None,
        error: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.agent_logs.add_log(AgentLogEntry(
            session_id=session_id,
            turn_id=turn_id,
            agent_name=agent_name,
            event_type=event_type,
            fallback_used=fallback_used,
            duration_ms=duration_ms,
            error=error,
            metadata=metadata or {},
        ))

    async def start_session(self, state: SessionState, request: ScenarioRequest) -> StartResult:
        """creating -> active: produce scenario, persona and the guest's opening line."""
        session_id = state.session_id
        # Reject before any generation runs
        if state.status != "creating":
            raise StateTransitionError(state.status, "active", "session has already been started")

        start = time.time()
        scenario_result = await self.factory.create_scenario(request, session_id)
        self._log_agent_event(
            session_id, "setup", "scenario_creator", "completed",
            fallback_used=scenario_result.fallback_used,
            duration_ms=int((time.time() - start) * 1000),
            error=scenario_result.error,
            metadata={"source": scenario_result.source, "title": scenario_result.value.title},
        )

        start = time.time()
        persona_result = await self.factory.create_persona(request, scenario_result.value, session_id)
        self._log_agent_event(
            session_id, "setup", "persona_generator", "completed",
            fallback_used=persona_result.fallback_used,
            duration_ms=int((time.time() - start) * 1000),
            error=persona_result.error,
            metadata={"source": persona_result.source, "name": persona_result.value.name},
        )

        start = time.time()
        opening = await self.guest.respond(
            session_id, "turn_0", 0, persona_result.value, scenario_result.value, []
        )
        self._log_guest(session_id, "turn_0", opening, start)

        fallbacks = sum([scenario_result.fallback_used, persona_result.fallback_used, opening.fallback_used])
        new_state = activate_session(
            state,
            scenario_result.value,
            persona_result.value,
            opening_message=create_guest_message(opening.message, opening.emotion),
            fallbacks_used=fallbacks,
        )

        logger.info(
            f"Session started: {session_id} scenario='{new_state.scenario.title}' "
            f"persona='{new_state.persona.name}' fallbacks={fallbacks}"
        )
        return StartResult(
            state=new_state,
            guest_response=opening,
            scenario_source=scenario_result.source,
            persona_source=persona_result.source,
        )

    async def process_turn(self, state: SessionState, trainee_text: str) -> TurnResult:
        """
        Process a single trainee turn.

        Raises StateError when the session cannot accept a turn. Generation
        and retrieval failures are absorbed by fallbacks.
        """
        ensure_accepting_turns(state)

        session_id = state.session_id
        turn_id = state.get_current_turn_id()
        turn_number = state.turn_count + 1
        trainee_message = create_trainee_message(trainee_text)

        logger.info(f"Turn started: {turn_id} for session {session_id}")
        self._log_agent_event(
            session_id, turn_id, "orchestrator", "turn_started",
            metadata={"turn_count": state.turn_count, "message_length": len(trainee_text)},
        )

        # Step 1: silent scoring
        start = time.time()
        assessment = await self.scoring.score_turn(
            session_id,
            turn_id,
            trainee_text,
            state.conversation,
            state.scenario,
            state.persona,
            state.completed_steps,
        )
        self._log_agent_event(
            session_id, turn_id, "silent_scorer", "completed",
            fallback_used=assessment.fallback_used,
            duration_ms=int((time.time() - start) * 1000),
            error=assessment.error,
            metadata={
                "scores": assessment.evidence.scores,
                "critical_errors": assessment.critical_errors,
                "completed_steps": assessment.completed_steps,
            },
        )

        # Step 2: guest reply, with the trainee message already in history
        start = time.time()
        guest_response = await self.guest.respond(
            session_id,
            turn_id,
            turn_number,
            state.persona,
            state.scenario,
            state.conversation + (trainee_message,),
        )
        self._log_guest(session_id, turn_id, guest_response, start)

        # Step 3: fold into state
        new_state = record_turn(
            state,
            trainee_message,
            assessment,
            create_guest_message(guest_response.message, guest_response.emotion),
            fallbacks_used=int(assessment.fallback_used) + int(guest_response.fallback_used),
        )

        # Step 4: completion policy
        decision = evaluate_completion(
            new_state,
            critical_error_threshold=self.settings.critical_error_threshold,
            max_turns=new_state.max_turns,
            natural_conclusion_ratio=self.settings.natural_conclusion_ratio,
            natural_conclusion_min_turns=self.settings.natural_conclusion_min_turns,
        )

        report = None
        if decision.should_terminate:
            new_state, report = await self.finalize(new_state, decision.reason)

        logger.info(
            f"Turn completed: {turn_id} session={session_id} "
            f"steps={len(new_state.completed_steps)}/{len(new_state.required_steps)} "
            f"errors={len(new_state.critical_errors)} terminate={decision.should_terminate}"
        )
        return TurnResult(state=new_state, guest_response=guest_response, decision=decision, report=report)

    async def finalize(
        self,
        state: SessionState,
        reason: CompletionReason,
    ) -> tuple[SessionState, FeedbackReport]:
        """active -> complete, then build the feedback report exactly once."""
        completed = complete_session(state, reason)

        start = time.time()
        report = await self.feedback.build_report(completed)
        self._log_agent_event(
            completed.session_id, "feedback", "feedback_writer", "completed",
            fallback_used=report.is_fallback,
            duration_ms=int((time.time() - start) * 1000),
            metadata={"overall_score": report.overall_score, "grade": report.grade, "reason": reason},
        )

        if report.is_fallback:
            completed = completed.model_copy(update={"fallback_count": completed.fallback_count + 1})

        logger.info(
            f"Session completed: {completed.session_id} reason={reason} "
            f"score={report.overall_score} grade={report.grade}"
        )
        return completed, report

    def _log_guest(self, session_id: str, turn_id: str, response: GuestResponse, start: float) -> None:
        self._log_agent_event(
            session_id, turn_id, "guest_simulator", "completed",
            fallback_used=response.fallback_used,
            duration_ms=int((time.time() - start) * 1000),
            error=response.error,
            metadata={
                "emotion": response.emotion,
                "intensity": response.intensity,
                "consistency_score": response.consistency_score,
                "revealed": len(response.revealed_information),
                "should_continue": response.should_continue,
            },
        )

"""
Guest response generation.

Wraps the guest simulator agent with the emotional arc and the deterministic
fallback pool. A guest reply is always produced; generation failures never
abort a turn.
"""

import json
import logging
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from trainer.agents.base_agent import AgentContext
from trainer.agents.guest_simulator import GuestSimulatorAgent
from trainer.exceptions import GenerationError
from trainer.models.messages import Message
from trainer.models.scenario import Persona, Scenario
from trainer.utils.emotional_arc import (
    EmotionalState,
    calculate_emotional_state,
    select_information_to_reveal,
)
from trainer.utils.text_utils import (
    FALLBACK_CONSISTENCY,
    calculate_consistency_score,
    fallback_emotion,
    fallback_guest_response,
    should_continue_conversation,
)

logger = logging.getLogger("trainer.guest")


class GuestResponse(BaseModel):
    """One guest utterance plus the observability data around it."""

    model_config = ConfigDict(frozen=True)

    message: str
    emotion: str
    intensity: float
    revealed_information: list[str] = Field(default_factory=list)
    consistency_score: float = Field(ge=0.0, le=1.0)
    should_continue: bool = True
    fallback_used: bool = False
    error: Optional[str] = None


class GuestResponder:
    """Produces the next in-character guest message."""

    def __init__(self, agent: GuestSimulatorAgent):
        self.agent = agent

    async def respond(
        self,
        session_id: str,
        turn_id: str,
        turn_number: int,
        persona: Persona,
        scenario: Optional[Scenario],
        history: Sequence[Message],
    ) -> GuestResponse:
        state = calculate_emotional_state(persona, turn_number, len(history))
        reveal = select_information_to_reveal(
            persona, scenario, [message.content for message in history], state
        )
        continue_signal = should_continue_conversation(len(history))

        context = AgentContext(
            session_id=session_id,
            turn_id=turn_id,
            turn_number=turn_number,
            scenario=scenario,
            persona=persona,
            history=list(history),
            additional_context={"emotional_state": state, "reveal": reveal},
        )

        try:
            utterance = await self.agent.execute(context)
        except GenerationError as e:
            return self._fallback(session_id, turn_number, persona, state, continue_signal, e)

        return GuestResponse(
            message=utterance.message,
            emotion=state.current_emotion,
            intensity=state.intensity,
            revealed_information=reveal,
            consistency_score=calculate_consistency_score(persona, utterance.message, state, turn_number),
            should_continue=continue_signal,
        )

    def _fallback(
        self,
        session_id: str,
        turn_number: int,
        persona: Persona,
        state: EmotionalState,
        continue_signal: bool,
        error: Exception,
    ) -> GuestResponse:
        logger.warning(json.dumps({
            "event": "guest_fallback",
            "session_id": session_id,
            "turn_number": turn_number,
            "error_type": type(error).__name__,
            "error": str(error),
        }))
        return GuestResponse(
            message=fallback_guest_response(turn_number),
            emotion=fallback_emotion(persona),
            intensity=state.intensity,
            consistency_score=FALLBACK_CONSISTENCY,
            should_continue=continue_signal,
            fallback_used=True,
            error=str(error),
        )

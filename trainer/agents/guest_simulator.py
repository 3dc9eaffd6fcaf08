"""
Guest Simulator Agent

Plays the guest persona. Produces plain text that is cleaned of stage
directions and out-of-character phrases before use.
"""

from typing import Type
from pydantic import BaseModel

from trainer.agents.base_agent import BaseAgent, AgentContext
from trainer.exceptions import AgentOutputError
from trainer.prompts.templates import GUEST_TEMPLATE, format_conversation, format_list_for_prompt
from trainer.utils.emotional_arc import EmotionalState
from trainer.utils.text_utils import clean_guest_response


HISTORY_WINDOW = 6


class GuestUtterance(BaseModel):
    message: str


class GuestSimulatorAgent(BaseAgent):

    json_mode = False

    @property
    def agent_name(self) -> str:
        return "guest_simulator"

    def get_output_model(self) -> Type[BaseModel]:
        return GuestUtterance

    def build_prompt(self, context: AgentContext) -> str:
        persona = context.persona
        scenario = context.scenario
        state: EmotionalState = context.additional_context["emotional_state"]
        reveal = context.additional_context.get("reveal", [])

        return GUEST_TEMPLATE.render(
            name=persona.name,
            background=persona.background,
            traits=", ".join(persona.personality_traits),
            communication_style=persona.communication_style,
            scenario_title=scenario.title if scenario else "Guest inquiry",
            scenario_description=scenario.description if scenario else "",
            emotion=state.current_emotion,
            intensity_percent=round(state.intensity * 100),
            next_emotion=state.next_emotion or state.current_emotion,
            triggers=", ".join(state.triggers) or "none",
            reveal=format_list_for_prompt(reveal),
            history=format_conversation(context.history[-HISTORY_WINDOW:]),
        )

    def parse_output(self, output_text: str, context: AgentContext) -> GuestUtterance:
        cleaned = clean_guest_response(output_text)
        if not cleaned:
            raise AgentOutputError(self.agent_name, expected_schema="non-empty guest reply")
        return GuestUtterance(message=cleaned)

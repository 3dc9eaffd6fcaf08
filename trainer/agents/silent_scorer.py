"""
Silent Scorer Agent

Grades the trainee's latest message on five dimensions. The trainee never
sees this output directly.
"""

from typing import Type
from pydantic import BaseModel

from trainer.agents.base_agent import BaseAgent, AgentContext
from trainer.models.evidence import ScoringEvidence
from trainer.prompts.templates import SCORING_TEMPLATE, format_conversation
from trainer.utils.scoring_utils import parse_scoring_response


HISTORY_WINDOW = 4


class SilentScorerAgent(BaseAgent):

    json_mode = False

    @property
    def agent_name(self) -> str:
        return "silent_scorer"

    def get_output_model(self) -> Type[BaseModel]:
        return ScoringEvidence

    def build_prompt(self, context: AgentContext) -> str:
        scenario = context.scenario
        persona = context.persona
        passages = context.additional_context.get("sop_passages") or []
        sop_context = "\nRELEVANT SOP CONTEXT:\n" + "\n".join(passages) if passages else ""

        return SCORING_TEMPLATE.render(
            title=scenario.title,
            description=scenario.description,
            required_steps=", ".join(scenario.required_steps),
            critical_errors=", ".join(scenario.critical_errors),
            persona_name=persona.name,
            persona_background=persona.background,
            communication_style=persona.communication_style,
            history=format_conversation(context.history[-HISTORY_WINDOW:]),
            trainee_message=context.trainee_message,
            sop_context=sop_context,
        )

    def parse_output(self, output_text: str, context: AgentContext) -> ScoringEvidence:
        # Unparseable dimensions default individually; the turn never fails here
        return parse_scoring_response(output_text)

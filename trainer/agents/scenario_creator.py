"""
Scenario Creator Agent

Drafts a training scenario from a training objective. Drafts are loosely
typed here; structural validation happens in the session factory.
"""

from typing import Any, Type
from pydantic import BaseModel, Field

from trainer.agents.base_agent import BaseAgent, AgentContext
from trainer.prompts.templates import SCENARIO_TEMPLATE, format_list_for_prompt


class ScenarioDraft(BaseModel):
    """Raw scenario as generated, before validation."""

    title: str = ""
    description: str = ""
    required_steps: list[str] = Field(default_factory=list)
    critical_errors: list[str] = Field(default_factory=list)
    time_pressure: Any = None


class ScenarioCreatorAgent(BaseAgent):

    @property
    def agent_name(self) -> str:
        return "scenario_creator"

    def get_output_model(self) -> Type[BaseModel]:
        return ScenarioDraft

    def build_prompt(self, context: AgentContext) -> str:
        additional = context.additional_context
        return SCENARIO_TEMPLATE.render(
            objective=additional.get("training_objective", "Handle a guest service issue"),
            training_level=additional.get("training_level", "beginner"),
            sop_context=format_list_for_prompt(additional.get("sop_passages", [])),
        )

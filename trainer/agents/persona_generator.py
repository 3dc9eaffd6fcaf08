"""
Persona Generator Agent

Drafts the guest persona, with a psychological profile, for a scenario.
"""

from typing import Optional, Type
from pydantic import BaseModel, Field

from trainer.agents.base_agent import BaseAgent, AgentContext
from trainer.prompts.templates import PERSONA_TEMPLATE


class ProfileDraft(BaseModel):
    primary_motivation: str = "Seeking resolution"
    stress_response: str = "Becomes more direct"
    communication_pattern: str = "Clear and direct"
    emotional_triggers: list[str] = Field(default_factory=list)
    resolution_style: str = "Wants quick solutions"


class PersonaDraft(BaseModel):
    """Raw persona as generated, before validation."""

    name: str = ""
    background: str = ""
    personality_traits: list[str] = Field(default_factory=list)
    hidden_motivations: list[str] = Field(default_factory=list)
    communication_style: str = ""
    emotional_arc: list[str] = Field(default_factory=list)
    psychological_profile: Optional[ProfileDraft] = None


class PersonaGeneratorAgent(BaseAgent):
    """Builds a persona whose behavior follows from an explicit psychological profile."""

    @property
    def agent_name(self) -> str:
        return "persona_generator"

    def get_output_model(self) -> Type[BaseModel]:
        return PersonaDraft

    def build_prompt(self, context: AgentContext) -> str:
        scenario = context.scenario
        additional = context.additional_context
        challenges = additional.get("specific_challenges") or []
        return PERSONA_TEMPLATE.render(
            title=scenario.title if scenario else "General guest inquiry",
            description=scenario.description if scenario else "A guest needs help.",
            training_level=additional.get("training_level", "beginner"),
            personality_type=additional.get("personality_type") or "any",
            challenges=", ".join(challenges) if challenges else "none",
        )

"""
Scenario and persona factories.

Produce the scenario and persona a session runs on. Custom input from the
caller is used when valid; otherwise the generative agents draft one. Any
generation or validation failure falls back to a fixed, deterministic
producer, so a session can always start.
"""

import json
import logging
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from trainer.agents.base_agent import AgentContext
from trainer.agents.persona_generator import PersonaDraft, PersonaGeneratorAgent
from trainer.agents.scenario_creator import ScenarioCreatorAgent
from trainer.exceptions import ContentValidationError, GenerationError
from trainer.models.scenario import Persona, PsychologicalProfile, Scenario, ScenarioRequest
from trainer.services.retrieval_service import NullRetrievalService, RetrievalService
from trainer.utils.schema_utils import validate_content

logger = logging.getLogger("trainer.session_factory")

T = TypeVar("T")


class FactoryResult(BaseModel, Generic[T]):
    """A produced item and whether the fallback producer made it."""

    value: T
    fallback_used: bool = False
    source: str = "generated"
    error: Optional[str] = None


# Fallback producers

def fallback_scenario() -> Scenario:
    return Scenario(
        title="Basic Customer Service Training",
        description=(
            "A guest contacts customer service with a general inquiry and needs "
            "professional assistance."
        ),
        required_steps=["Greet the customer", "Listen to their concern", "Provide assistance"],
        critical_errors=["Being rude", "Ignoring the customer"],
        time_pressure=3,
    )


FALLBACK_PROFILE = PsychologicalProfile(
    primary_motivation="Seeking quick resolution",
    stress_response="Becomes more direct and specific",
    communication_pattern="Clear and factual",
    emotional_triggers=["Delays", "Unclear answers"],
    resolution_style="Prefers step-by-step solutions",
)


def fallback_persona(scenario: Optional[Scenario] = None, training_level: str = "beginner") -> Persona:
    topic = scenario.title if scenario else "a general request"
    return Persona(
        name="Alex",
        background=(
            f"A guest with a {training_level} level inquiry related to {topic}. "
            "They are seeking assistance and expect professional service."
        ),
        personality_traits=["Direct communicator", "Expects timely responses", "Values clear information"],
        hidden_motivations=["Wants to resolve the issue quickly", "Concerned about service quality"],
        communication_style="Clear and straightforward, becomes more direct if not getting answers",
        emotional_arc=["curious", "concerned", "satisfied"],
        psychological_profile=FALLBACK_PROFILE,
        consistency=0.7,
    )


def calculate_persona_consistency(persona: Persona, profile: PsychologicalProfile) -> float:
    """Share of four coherence checks between a persona and its profile."""
    checks = []

    pattern_words = profile.communication_pattern.lower().split()
    checks.append(bool(pattern_words) and pattern_words[0] in persona.communication_style.lower())

    motivation_words = [word for word in profile.primary_motivation.lower().split() if word]
    checks.append(any(
        word in trait.lower() for trait in persona.personality_traits for word in motivation_words
    ))

    checks.append(len(persona.emotional_arc) >= 2)
    checks.append(bool(persona.hidden_motivations) and len(persona.background) > 50)

    return round(sum(checks) / len(checks), 2)


class SessionFactory:
    """Builds the scenario and persona for a new session."""

    def __init__(
        self,
        scenario_agent: ScenarioCreatorAgent,
        persona_agent: PersonaGeneratorAgent,
        retrieval: Optional[RetrievalService] = None,
    ):
        self.scenario_agent = scenario_agent
        self.persona_agent = persona_agent
        self.retrieval = retrieval or NullRetrievalService()

    async def create_scenario(self, request: ScenarioRequest, session_id: str) -> FactoryResult[Scenario]:
        if request.scenario is not None:
            try:
                return FactoryResult[Scenario](
                    value=validate_content(request.scenario, Scenario, "scenario"),
                    source="custom",
                )
            except ContentValidationError as e:
                return self._scenario_fallback(session_id, e)

        passages = await self.retrieval.retrieve_or_empty(
            f"Scenario templates for: {request.training_objective}", filters={"category": "scenario"}
        )
        context = AgentContext(
            session_id=session_id,
            turn_id="setup",
            additional_context={
                "training_objective": request.training_objective,
                "training_level": request.training_level,
                "sop_passages": [p.content for p in passages],
            },
        )
        try:
            draft = await self.scenario_agent.execute(context)
            scenario = validate_content(draft.model_dump(), Scenario, "scenario")
        except (GenerationError, ContentValidationError) as e:
            return self._scenario_fallback(session_id, e)

        return FactoryResult[Scenario](value=scenario)

    async def create_persona(
        self,
        request: ScenarioRequest,
        scenario: Scenario,
        session_id: str,
    ) -> FactoryResult[Persona]:
        if request.persona is not None:
            try:
                persona = validate_content(request.persona, Persona, "persona")
                return FactoryResult[Persona](value=self._with_consistency(persona), source="custom")
            except ContentValidationError as e:
                return self._persona_fallback(session_id, scenario, request, e)

        preferences = request.persona_preferences
        context = AgentContext(
            session_id=session_id,
            turn_id="setup",
            scenario=scenario,
            additional_context={
                "training_level": request.training_level,
                "personality_type": preferences.personality_type,
                "specific_challenges": preferences.specific_challenges,
            },
        )
        try:
            draft: PersonaDraft = await self.persona_agent.execute(context)
            data = draft.model_dump(exclude_none=True)
            persona = validate_content(data, Persona, "persona")
        except (GenerationError, ContentValidationError) as e:
            return self._persona_fallback(session_id, scenario, request, e)

        return FactoryResult[Persona](value=self._with_consistency(persona))

    @staticmethod
    def _with_consistency(persona: Persona) -> Persona:
        score = calculate_persona_consistency(persona, persona.psychological_profile)
        return persona.model_copy(update={"consistency": score})

    def _scenario_fallback(self, session_id: str, error: Exception) -> FactoryResult[Scenario]:
        logger.warning(json.dumps({
            "event": "scenario_fallback",
            "session_id": session_id,
            "error_type": type(error).__name__,
            "error": str(error),
        }))
        return FactoryResult[Scenario](
            value=fallback_scenario(), fallback_used=True, source="fallback", error=str(error)
        )

    def _persona_fallback(
        self,
        session_id: str,
        scenario: Scenario,
        request: ScenarioRequest,
        error: Exception,
    ) -> FactoryResult[Persona]:
        logger.warning(json.dumps({
            "event": "persona_fallback",
            "session_id": session_id,
            "error_type": type(error).__name__,
            "error": str(error),
        }))
        return FactoryResult[Persona](
            value=fallback_persona(scenario, request.training_level),
            fallback_used=True,
            source="fallback",
            error=str(error),
        )

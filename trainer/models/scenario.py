"""
Scenario and Persona Models

The scripted exercise a trainee works through and the guest character who
plays it out. Both are frozen once a session starts.
"""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


TrainingLevel = Literal["beginner", "intermediate", "advanced"]
PersonalityType = Literal["cooperative", "difficult", "neutral", "emotional"]


def difficulty_for_time_pressure(time_pressure: int) -> TrainingLevel:
    """Map a 1-10 time pressure rating onto a training level."""
    if time_pressure <= 3:
        return "beginner"
    if time_pressure <= 7:
        return "intermediate"
    return "advanced"


class Scenario(BaseModel):
    """A training scenario: what must be done, and what must never happen."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=200, description="Short descriptive name")
    description: str = Field(min_length=10, max_length=2000, description="Narrative setting up the scenario")
    required_steps: list[str] = Field(min_length=1, max_length=20, description="Ordered required step labels")
    critical_errors: list[str] = Field(min_length=1, max_length=15, description="Severe mistakes")
    time_pressure: int = Field(ge=1, le=10, description="Urgency rating (1-10)")

    @field_validator("required_steps", "critical_errors")
    @classmethod
    def _labels_not_blank(cls, labels: list[str]) -> list[str]:
        cleaned = [label.strip() for label in labels]
        if any(not label for label in cleaned):
            raise ValueError("labels must not be blank")
        return cleaned

    @field_validator("required_steps")
    @classmethod
    def _steps_unique(cls, steps: list[str]) -> list[str]:
        if len(set(steps)) != len(steps):
            raise ValueError("required steps must be unique")
        return steps

    @property
    def difficulty(self) -> TrainingLevel:
        return difficulty_for_time_pressure(self.time_pressure)


class PsychologicalProfile(BaseModel):
    """Inner drivers behind a persona's behavior."""

    model_config = ConfigDict(frozen=True)

    primary_motivation: str = Field(default="Seeking resolution")
    stress_response: str = Field(default="Becomes more direct")
    communication_pattern: str = Field(default="Clear and direct")
    emotional_triggers: list[str] = Field(default_factory=list)
    resolution_style: str = Field(default="Wants quick solutions")


class Persona(BaseModel):
    """The guest character played against the trainee."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=100)
    background: str = Field(min_length=10, max_length=2000)
    personality_traits: list[str] = Field(min_length=1, max_length=10)
    hidden_motivations: list[str] = Field(min_length=1, max_length=10)
    communication_style: str = Field(min_length=1, max_length=500)
    emotional_arc: list[str] = Field(min_length=1, max_length=10, description="Ordered emotional stages")
    psychological_profile: PsychologicalProfile = Field(default_factory=PsychologicalProfile)
    consistency: float = Field(default=1.0, ge=0.0, le=1.0, description="Persona/profile coherence (0-1)")

    @field_validator("emotional_arc")
    @classmethod
    def _normalize_arc(cls, arc: list[str]) -> list[str]:
        cleaned = [stage.strip().lower() for stage in arc]
        if any(not stage for stage in cleaned):
            raise ValueError("emotional arc stages must not be blank")
        return cleaned


class PersonaPreferences(BaseModel):
    """Optional steering for persona generation."""

    personality_type: Optional[PersonalityType] = None
    specific_challenges: list[str] = Field(default_factory=list)


class ScenarioRequest(BaseModel):
    """Caller input for starting a session."""

    training_objective: str = Field(
        default="Handle a guest service issue professionally",
        min_length=1,
        max_length=500,
    )
    training_level: TrainingLevel = "beginner"
    scenario: Optional[dict] = Field(default=None, description="Custom scenario used instead of generation")
    persona: Optional[dict] = Field(default=None, description="Custom persona used instead of generation")
    persona_preferences: PersonaPreferences = Field(default_factory=PersonaPreferences)

"""
Emotional arc utilities.

Derives the guest's emotional state from the persona and how far the
conversation has progressed, and decides which hidden facts the guest is
willing to surface next. Everything here is pure: identical inputs always
give identical outputs.
"""

import re
from typing import Optional, Sequence
from pydantic import BaseModel, ConfigDict, Field

from trainer.models.scenario import Persona, Scenario
from trainer.utils.vocabulary import EMOTIONAL_KEYWORDS, EXPRESSIVE_TRAITS


# Turns expected to traverse the whole arc
EXPECTED_ARC_TURNS = 8

BASE_INTENSITY = 0.5
EXPRESSIVE_BONUS = 0.2
BUILDUP_START = 5
BUILDUP_PER_MESSAGE = 0.05
MAX_BUILDUP = 0.3

# Intensity above which emotionally charged facts surface first
EMOTIONAL_PRIORITY_INTENSITY = 0.6

_NON_LETTERS = re.compile(r"[^a-z\s]")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


class EmotionalState(BaseModel):
    """Derived guest emotion for one turn. Never persisted."""

    model_config = ConfigDict(frozen=True)

    current_emotion: str
    intensity: float = Field(ge=0.0, le=1.0)
    triggers: tuple[str, ...] = ()
    next_emotion: Optional[str] = None
    arc_position: int = 0


def arc_position(turn_count: int, arc_length: int) -> int:
    """Index of the arc stage for a turn, clamped to the last stage."""
    if arc_length <= 0:
        return 0
    position = int(max(turn_count, 0) / EXPECTED_ARC_TURNS * arc_length)
    return min(position, arc_length - 1)


def calculate_intensity(persona: Persona, history_length: int) -> float:
    intensity = BASE_INTENSITY

    traits = [trait.lower() for trait in persona.personality_traits]
    if any(keyword in trait for trait in traits for keyword in EXPRESSIVE_TRAITS):
        intensity += EXPRESSIVE_BONUS

    # Frustration builds over a long conversation
    if history_length > BUILDUP_START:
        intensity += min(MAX_BUILDUP, (history_length - BUILDUP_START) * BUILDUP_PER_MESSAGE)

    return round(min(1.0, intensity), 4)


def extract_triggers(persona: Persona) -> tuple[str, ...]:
    return tuple(
        _NON_LETTERS.sub("", motivation.lower()).strip()
        for motivation in persona.hidden_motivations
    )


def calculate_emotional_state(persona: Persona, turn_count: int, history_length: int) -> EmotionalState:
    """Current emotion, intensity and triggers for a turn."""
    arc = persona.emotional_arc
    position = arc_position(turn_count, len(arc))

    return EmotionalState(
        current_emotion=arc[position],
        intensity=calculate_intensity(persona, history_length),
        triggers=extract_triggers(persona),
        next_emotion=arc[position + 1] if position < len(arc) - 1 else arc[-1],
        arc_position=position,
    )


def extract_background_details(background: str, limit: int = 3) -> list[str]:
    sentences = [part.strip() for part in _SENTENCE_SPLIT.split(background)]
    return [sentence for sentence in sentences if len(sentence) > 10][:limit]


def candidate_information(persona: Persona, scenario: Optional[Scenario]) -> list[str]:
    """Everything the guest could eventually reveal, in a fixed order."""
    info = list(persona.hidden_motivations)
    info.extend(extract_background_details(persona.background))
    if scenario is not None:
        info.append(f"Situation involves: {scenario.title}")
        info.extend(extract_background_details(scenario.description, limit=1))
    return info


def is_revealed(info: str, conversation_text: str) -> bool:
    keywords = [word for word in info.lower().split() if len(word) > 3]
    return any(keyword in conversation_text for keyword in keywords)


def max_reveals(intensity: float) -> int:
    return int(intensity * 2) + 1


def select_information_to_reveal(
    persona: Persona,
    scenario: Optional[Scenario],
    conversation: Sequence[str],
    state: EmotionalState,
) -> list[str]:
    """
    Pick the facts the guest should surface this turn.

    At most floor(intensity * 2) + 1 unrevealed facts. Once intensity exceeds
    0.6, emotionally charged facts move to the front; otherwise candidate
    order is kept (sorted() is stable).
    """
    conversation_text = " ".join(conversation).lower()
    unrevealed = [
        info for info in candidate_information(persona, scenario)
        if not is_revealed(info, conversation_text)
    ]
    if not unrevealed:
        return []

    if state.intensity > EMOTIONAL_PRIORITY_INTENSITY:
        unrevealed = sorted(
            unrevealed,
            key=lambda info: 0 if any(word in info.lower() for word in EMOTIONAL_KEYWORDS) else 1,
        )

    return unrevealed[:max_reveals(state.intensity)]

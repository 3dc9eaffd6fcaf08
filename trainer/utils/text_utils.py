"""
Guest text utilities.

Post-processing for generated guest replies, the deterministic fallback
reply pool and the heuristic in-character consistency score.
"""

import re
from typing import Optional

from trainer.models.scenario import Persona
from trainer.utils.emotional_arc import EmotionalState
from trainer.utils.vocabulary import EMOTION_VOCABULARY, GUEST_FALLBACK_RESPONSES, META_DENYLIST


# Guests stop wanting to talk after this many history messages
MAX_CONVERSATION_LENGTH = 20

FALLBACK_CONSISTENCY = 0.5

_ROLE_PREFIX = re.compile(r"^\s*as\s+[^,\n]{1,60},\s*", re.IGNORECASE)
_ACTIONS = re.compile(r"\*[^*]*\*")
_PARENTHETICALS = re.compile(r"\([^)]*\)")
_WHITESPACE = re.compile(r"\s+")
_DENYLIST = re.compile("|".join(re.escape(phrase) for phrase in META_DENYLIST), re.IGNORECASE)

_DIRECT_STYLE = {"direct", "straightforward", "blunt"}
_POLITE_STYLE = {"polite", "courteous", "respectful"}
_CASUAL_STYLE = {"casual", "informal", "relaxed"}


def clean_guest_response(text: str) -> str:
    """Strip role prefixes, stage directions and out-of-character phrases."""
    cleaned = _ROLE_PREFIX.sub("", text or "")
    cleaned = _ACTIONS.sub("", cleaned)
    cleaned = _PARENTHETICALS.sub("", cleaned)
    cleaned = _DENYLIST.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    # Drop punctuation orphaned by removed phrases
    return re.sub(r"\s+([,.!?])", r"\1", cleaned).strip(" ,")


def _mentions(text: str, *words: str) -> bool:
    return any(re.search(rf"\b{re.escape(word)}\b", text) for word in words)


def fallback_guest_response(turn_count: int) -> str:
    return GUEST_FALLBACK_RESPONSES[turn_count % len(GUEST_FALLBACK_RESPONSES)]


def fallback_emotion(persona: Optional[Persona]) -> str:
    if persona and persona.emotional_arc:
        return persona.emotional_arc[0]
    return "neutral"


def should_continue_conversation(history_length: int) -> bool:
    return history_length < MAX_CONVERSATION_LENGTH


def calculate_consistency_score(
    persona: Persona,
    response: str,
    state: EmotionalState,
    turn_count: int,
) -> float:
    """
    Heuristic 0-1 score of how in-character a reply reads.

    Observability data only; nothing gates on it.
    """
    score = 1.0
    text = response.lower()
    style_words = set(re.findall(r"[a-z']+", persona.communication_style.lower()))

    if style_words & _DIRECT_STYLE and _mentions(text, "maybe", "perhaps"):
        score -= 0.1
    if style_words & _POLITE_STYLE and _mentions(text, "whatever", "don't care"):
        score -= 0.2
    if not style_words & _CASUAL_STYLE and _mentions(text, "hey", "gonna"):
        score -= 0.1

    expected = EMOTION_VOCABULARY.get(state.current_emotion, ())
    emotional_match = state.current_emotion in text or any(word in text for word in expected)
    if not emotional_match and state.intensity > 0.5:
        score -= 0.15

    trait_words = [
        word for trait in persona.personality_traits for word in trait.lower().split() if len(word) > 3
    ]
    if not any(word in text for word in trait_words) and turn_count > 2:
        score -= 0.1

    return max(0.0, round(score, 2))

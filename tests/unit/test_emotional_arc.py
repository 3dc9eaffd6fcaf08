"""
Unit tests for trainer/utils/emotional_arc.py

Covers arc position, intensity build-up, purity of the emotional state and
the information-reveal policy.
"""

import pytest

from trainer.models.scenario import Persona
from trainer.utils.emotional_arc import (
    EmotionalState,
    arc_position,
    calculate_emotional_state,
    calculate_intensity,
    candidate_information,
    extract_background_details,
    extract_triggers,
    is_revealed,
    max_reveals,
    select_information_to_reveal,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_calm_persona(**overrides):
    defaults = dict(
        name="Tom",
        background="Tom is a regular guest who stays twice a year.",
        personality_traits=["Patient", "Friendly"],
        hidden_motivations=["Wants a late checkout"],
        communication_style="Casual and relaxed",
        emotional_arc=["calm", "curious", "satisfied"],
    )
    defaults.update(overrides)
    return Persona(**defaults)


def make_state(intensity, emotion="frustrated"):
    return EmotionalState(current_emotion=emotion, intensity=intensity)


# ---------------------------------------------------------------------------
# Arc position
# ---------------------------------------------------------------------------

class TestArcPosition:
    @pytest.mark.parametrize("turn_count,expected", [(0, 0), (1, 0), (2, 1), (4, 2), (6, 3), (7, 3)])
    def test_walks_the_arc_over_eight_turns(self, turn_count, expected):
        assert arc_position(turn_count, 4) == expected

    def test_clamped_to_last_stage(self):
        assert arc_position(8, 4) == 3
        assert arc_position(100, 4) == 3

    def test_single_stage_arc(self):
        assert arc_position(5, 1) == 0

    def test_empty_arc(self):
        assert arc_position(3, 0) == 0


# ---------------------------------------------------------------------------
# Intensity
# ---------------------------------------------------------------------------

class TestIntensity:
    def test_base_intensity(self):
        assert calculate_intensity(make_calm_persona(), 0) == 0.5

    def test_expressive_trait_bonus(self, persona):
        # "Passionate about punctuality" is expressive
        assert calculate_intensity(persona, 0) == 0.7

    def test_builds_up_after_five_messages(self, persona):
        assert calculate_intensity(persona, 5) == 0.7
        assert calculate_intensity(persona, 7) == 0.8

    def test_build_up_is_capped(self):
        assert calculate_intensity(make_calm_persona(), 10) == 0.75
        assert calculate_intensity(make_calm_persona(), 50) == 0.8

    def test_never_exceeds_one(self, persona):
        assert calculate_intensity(persona, 100) == 1.0


# ---------------------------------------------------------------------------
# Emotional state
# ---------------------------------------------------------------------------

class TestEmotionalState:
    def test_is_pure(self, persona):
        first = calculate_emotional_state(persona, 3, 6)
        second = calculate_emotional_state(persona, 3, 6)
        assert first == second

    def test_current_and_next_emotion(self, persona):
        state = calculate_emotional_state(persona, 2, 4)
        assert state.current_emotion == "frustrated"
        assert state.next_emotion == "angry"
        assert state.arc_position == 1

    def test_next_emotion_at_last_stage(self, persona):
        state = calculate_emotional_state(persona, 12, 24)
        assert state.current_emotion == "satisfied"
        assert state.next_emotion == "satisfied"

    def test_triggers_from_motivations(self, persona):
        assert extract_triggers(persona) == (
            "needs to sleep near the meeting venue",
            "worried about the presentation",
        )

    def test_triggers_strip_punctuation(self):
        persona = make_calm_persona(hidden_motivations=["Wants a LATE check-out!"])
        assert extract_triggers(persona) == ("wants a late checkout",)


# ---------------------------------------------------------------------------
# Reveal policy
# ---------------------------------------------------------------------------

class TestRevealPolicy:
    @pytest.mark.parametrize("intensity,expected", [(0.0, 1), (0.5, 2), (0.7, 2), (1.0, 3)])
    def test_max_reveals(self, intensity, expected):
        assert max_reveals(intensity) == expected

    def test_background_details(self):
        details = extract_background_details("Short. This sentence is long enough! Another long sentence here? Tiny.")
        assert details == ["This sentence is long enough", "Another long sentence here"]

    def test_candidates_in_fixed_order(self, persona, scenario):
        candidates = candidate_information(persona, scenario)
        assert candidates[:2] == persona.hidden_motivations
        assert candidates[2] == "Maria booked months in advance"
        assert "Situation involves: Overbooked Hotel Room" in candidates
        assert len(candidates) == 7

    def test_candidates_without_scenario(self, persona):
        candidates = candidate_information(persona, None)
        assert not any(item.startswith("Situation involves") for item in candidates)

    def test_is_revealed_by_keyword(self):
        assert is_revealed("Worried about the presentation", "your presentation matters")
        assert not is_revealed("Worried about the presentation", "how can i help")

    def test_low_intensity_keeps_candidate_order(self, persona, scenario):
        reveal = select_information_to_reveal(persona, scenario, [], make_state(0.5))
        assert reveal == ["Needs to sleep near the meeting venue", "Worried about the presentation"]

    def test_high_intensity_puts_emotional_facts_first(self, persona, scenario):
        reveal = select_information_to_reveal(persona, scenario, [], make_state(0.8))
        assert reveal == ["Worried about the presentation", "Needs to sleep near the meeting venue"]

    def test_reveal_count_grows_with_intensity(self, persona, scenario):
        reveal = select_information_to_reveal(persona, scenario, [], make_state(1.0))
        assert len(reveal) == 3

    def test_skips_already_revealed(self, persona, scenario):
        reveal = select_information_to_reveal(
            persona, scenario, ["Your presentation matters"], make_state(0.5)
        )
        assert reveal == ["Needs to sleep near the meeting venue", "Maria booked months in advance"]

    def test_nothing_left_to_reveal(self):
        persona = make_calm_persona(background="Short one.")
        reveal = select_information_to_reveal(
            persona, None, ["you want a late checkout"], make_state(0.9)
        )
        assert reveal == []

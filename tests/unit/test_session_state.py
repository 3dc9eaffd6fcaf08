"""Unit tests for trainer/models/session_state.py

Tests the immutable SessionState, its derived properties and the pure
transition functions of the session state machine.
"""

import pytest
from datetime import datetime, timedelta
from pydantic import ValidationError

from trainer.exceptions import SessionPausedError, StateTransitionError
from trainer.models.evidence import DimensionEvidence, ScoringEvidence, TurnAssessment
from trainer.models.messages import create_guest_message, create_trainee_message
from trainer.models.session_state import (
    SessionState,
    activate_session,
    complete_session,
    create_session,
    ensure_accepting_turns,
    pause_session,
    record_turn,
    resume_session,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_assessment(completed=(), errors=(), score=80):
    evidence = ScoringEvidence(**{
        name: DimensionEvidence(score=score)
        for name in ("policy_adherence", "empathy_index", "completeness", "escalation_judgment", "time_efficiency")
    })
    return TurnAssessment(evidence=evidence, completed_steps=list(completed), critical_errors=list(errors))


def make_active(scenario, persona, **kwargs):
    opening = create_guest_message("Hi, I have a problem with my booking.", "concerned")
    return activate_session(create_session("user-1", **kwargs), scenario, persona, opening)


def play_turn(state, completed=(), errors=()):
    return record_turn(
        state,
        create_trainee_message("Hello, how can I help?"),
        make_assessment(completed, errors),
        create_guest_message("My room is gone.", "frustrated"),
    )


# ---------------------------------------------------------------------------
# Creation and activation
# ---------------------------------------------------------------------------

class TestCreateSession:
    def test_starts_in_creating(self):
        state = create_session("user-1")
        assert state.status == "creating"
        assert state.turn_count == 0
        assert state.user_id == "user-1"

    def test_session_id_format(self):
        state = create_session()
        assert state.session_id.startswith("train_")
        assert len(state.session_id) == len("train_") + 12

    def test_ids_are_unique(self):
        assert create_session().session_id != create_session().session_id

    def test_blank_user_becomes_anonymous(self):
        assert create_session("").user_id == "anonymous"

    def test_custom_max_turns(self):
        assert create_session(max_turns=5).max_turns == 5


class TestActivateSession:
    def test_creating_to_active(self, scenario, persona):
        state = make_active(scenario, persona)
        assert state.status == "active"
        assert state.scenario == scenario
        assert state.persona == persona
        assert state.required_steps == tuple(scenario.required_steps)
        assert len(state.conversation) == 1
        assert state.started_at is not None

    def test_cannot_activate_twice(self, scenario, persona):
        state = make_active(scenario, persona)
        with pytest.raises(StateTransitionError):
            activate_session(state, scenario, persona)

    def test_counts_fallbacks(self, scenario, persona):
        state = activate_session(create_session(), scenario, persona, fallbacks_used=2)
        assert state.fallback_count == 2


# ---------------------------------------------------------------------------
# Turns
# ---------------------------------------------------------------------------

class TestRecordTurn:
    def test_appends_turn(self, scenario, persona):
        state = make_active(scenario, persona)
        new_state = play_turn(state, completed=["Apologize for the inconvenience"], errors=["Critical error detected: x"])

        assert new_state.turn_count == 1
        assert len(new_state.conversation) == 3
        assert [m.role for m in new_state.conversation] == ["guest", "trainee", "guest"]
        assert new_state.completed_steps == ("Apologize for the inconvenience",)
        assert new_state.critical_errors == ("Critical error detected: x",)
        assert len(new_state.score_history) == 1

    def test_original_state_unchanged(self, scenario, persona):
        state = make_active(scenario, persona)
        play_turn(state, completed=["Apologize for the inconvenience"])
        assert state.turn_count == 0
        assert state.completed_steps == ()

    def test_completed_steps_never_shrink(self, scenario, persona):
        state = play_turn(make_active(scenario, persona), completed=["Offer an alternative room"])
        state = play_turn(state)
        assert state.completed_steps == ("Offer an alternative room",)

    def test_completed_steps_follow_required_order(self, scenario, persona):
        state = play_turn(make_active(scenario, persona), completed=["Arrange compensation"])
        state = play_turn(state, completed=["Acknowledge the guest's frustration"])
        assert state.completed_steps == ("Acknowledge the guest's frustration", "Arrange compensation")

    def test_unknown_steps_ignored(self, scenario, persona):
        state = play_turn(make_active(scenario, persona), completed=["Dance"])
        assert state.completed_steps == ()
        assert set(state.completed_steps) <= set(state.required_steps)

    def test_critical_errors_append_only(self, scenario, persona):
        state = play_turn(make_active(scenario, persona), errors=["e1"])
        state = play_turn(state, errors=["e1"])
        assert state.critical_errors == ("e1", "e1")

    def test_rejected_before_start(self):
        with pytest.raises(StateTransitionError):
            play_turn(create_session())

    def test_rejected_when_paused(self, scenario, persona):
        state = pause_session(make_active(scenario, persona))
        with pytest.raises(SessionPausedError):
            play_turn(state)

    def test_rejected_at_max_turns(self, scenario, persona):
        state = play_turn(make_active(scenario, persona, max_turns=1))
        with pytest.raises(StateTransitionError):
            ensure_accepting_turns(state)

    def test_rejected_after_completion(self, scenario, persona):
        state = complete_session(make_active(scenario, persona), "force-completed")
        with pytest.raises(StateTransitionError):
            play_turn(state)


# ---------------------------------------------------------------------------
# Completion, pause and resume
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_complete_records_reason_once(self, scenario, persona):
        state = complete_session(make_active(scenario, persona), "all-steps-completed")
        assert state.status == "complete"
        assert state.completion_reason == "all-steps-completed"
        assert state.completed_at is not None
        with pytest.raises(StateTransitionError):
            complete_session(state, "max-turns-reached")

    def test_cannot_complete_before_start(self):
        with pytest.raises(StateTransitionError):
            complete_session(create_session(), "force-completed")

    def test_complete_clears_pause(self, scenario, persona):
        state = complete_session(pause_session(make_active(scenario, persona)), "force-completed")
        assert state.paused is False

    def test_pause_and_resume_keep_turns(self, scenario, persona):
        state = play_turn(make_active(scenario, persona))
        paused = pause_session(state)
        assert paused.paused is True
        resumed = resume_session(paused)
        assert resumed.paused is False
        assert resumed.turn_count == 1

    def test_resume_requires_pause(self, scenario, persona):
        with pytest.raises(StateTransitionError):
            resume_session(make_active(scenario, persona))

    def test_pause_requires_active(self):
        with pytest.raises(StateTransitionError):
            pause_session(create_session())


# ---------------------------------------------------------------------------
# Derived properties
# ---------------------------------------------------------------------------

class TestProperties:
    def test_state_is_frozen(self):
        state = create_session()
        with pytest.raises(ValidationError):
            state.turn_count = 5

    def test_progress_percentage(self, scenario, persona):
        state = play_turn(make_active(scenario, persona), completed=["Arrange compensation"])
        assert state.progress_percentage == 25.0

    def test_progress_without_steps(self):
        assert create_session().progress_percentage == 0.0

    def test_duration_uses_completion_time(self):
        start = datetime(2026, 1, 1, 12, 0, 0)
        state = SessionState(
            started_at=start,
            updated_at=start + timedelta(seconds=30),
            completed_at=start + timedelta(seconds=90),
        )
        assert state.duration_seconds == 90

    def test_duration_uses_last_activity(self):
        start = datetime(2026, 1, 1, 12, 0, 0)
        state = SessionState(started_at=start, updated_at=start + timedelta(seconds=45))
        assert state.duration_seconds == 45

    def test_duration_before_start(self):
        assert create_session().duration_seconds == 0

    def test_latest_evidence_and_guest_message(self, scenario, persona):
        state = make_active(scenario, persona)
        assert state.latest_evidence is None
        state = play_turn(state)
        assert state.latest_evidence.overall == 80
        assert state.last_guest_message.content == "My room is gone."

    def test_turn_id(self, scenario, persona):
        state = make_active(scenario, persona)
        assert state.get_current_turn_id() == "turn_1"
        assert play_turn(state).get_current_turn_id() == "turn_2"

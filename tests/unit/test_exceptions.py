"""Unit tests for trainer/exceptions.py and shared/utils/exceptions.py"""

import pytest
from fastapi import HTTPException

from shared.utils.exceptions import to_http_exception
from trainer.exceptions import (
    AgentError,
    AgentExecutionError,
    AgentOutputError,
    AgentTimeoutError,
    ConfigurationError,
    ContentValidationError,
    GenerationError,
    PromptTemplateError,
    RetrievalError,
    SessionExpiredError,
    SessionNotFoundError,
    SessionPausedError,
    StateError,
    StateTransitionError,
    TrainerError,
)


class TestHierarchy:
    def test_agent_errors_are_generation_errors(self):
        for error in (
            AgentExecutionError("guest_simulator", "boom"),
            AgentTimeoutError("guest_simulator", 5),
            AgentOutputError("guest_simulator"),
        ):
            assert isinstance(error, AgentError)
            assert isinstance(error, GenerationError)
            assert isinstance(error, TrainerError)

    def test_state_errors(self):
        assert isinstance(SessionPausedError("s1"), StateError)
        assert isinstance(StateTransitionError("active", "complete", "x"), StateError)

    def test_base_error_keeps_details(self):
        error = TrainerError("Something failed", {"key": "value"})
        assert error.message == "Something failed"
        assert error.details == {"key": "value"}
        assert str(error) == "Something failed"


class TestMessages:
    def test_agent_error_prefix(self):
        error = AgentExecutionError("silent_scorer", "connection reset")
        assert str(error) == "[silent_scorer] connection reset"
        assert error.agent_name == "silent_scorer"

    def test_timeout(self):
        error = AgentTimeoutError("guest_simulator", 30)
        assert "timed out after 30s" in str(error)
        assert error.timeout_seconds == 30

    def test_output_error_schema(self):
        error = AgentOutputError("scenario_creator", expected_schema="Scenario")
        assert "expected schema: Scenario" in str(error)

    def test_retrieval_truncates_query(self):
        error = RetrievalError("q" * 80, "index offline")
        assert "q" * 50 + "'" in str(error)
        assert error.reason == "index offline"

    def test_content_validation(self):
        error = ContentValidationError("scenario", ["title: too long", "time_pressure: too high"])
        assert str(error) == "scenario validation failed: title: too long; time_pressure: too high"
        assert error.errors == ["title: too long", "time_pressure: too high"]

    def test_session_expired(self):
        error = SessionExpiredError("train_abc", expired_at="2026-01-01T00:00:00")
        assert "train_abc" in str(error)
        assert "expired at" in str(error)

    def test_state_transition(self):
        error = StateTransitionError("complete", "active", "session is not accepting turns")
        assert error.from_state == "complete"
        assert error.to_state == "active"
        assert "session is not accepting turns" in str(error)

    def test_prompt_template(self):
        error = PromptTemplateError("guest", ["emotion", "name"])
        assert "emotion, name" in str(error)

    def test_configuration(self):
        error = ConfigurationError("openai_api_key", "missing")
        assert error.config_key == "openai_api_key"


class TestHttpMapping:
    @pytest.mark.parametrize("error,status_code", [
        (SessionNotFoundError("s1"), 404),
        (SessionExpiredError("s1"), 410),
        (StateTransitionError("complete", "active", "done"), 409),
        (SessionPausedError("s1"), 409),
        (ContentValidationError("persona", ["name: missing"]), 422),
        (AgentTimeoutError("guest_simulator", 5), 503),
        (ConfigurationError("llm_provider", "unknown"), 500),
    ])
    def test_status_codes(self, error, status_code):
        http_error = to_http_exception(error)
        assert isinstance(http_error, HTTPException)
        assert http_error.status_code == status_code
        assert http_error.detail["type"] == type(error).__name__
        assert http_error.detail["message"] == error.message

    def test_details_are_included(self):
        http_error = to_http_exception(TrainerError("bad", {"field": "x"}))
        assert http_error.detail["details"] == {"field": "x"}

    def test_unknown_errors_are_opaque(self):
        http_error = to_http_exception(KeyError("secret"))
        assert http_error.status_code == 500
        assert http_error.detail["message"] == "Internal server error"
        assert "secret" not in str(http_error.detail)

"""Unit tests for trainer/utils/schema_utils.py"""

import pytest

from trainer.exceptions import AgentOutputError, ContentValidationError
from trainer.models.scenario import Scenario
from trainer.utils.schema_utils import (
    extract_json_from_text,
    parse_json_safely,
    validate_agent_output,
    validate_content,
)


VALID_SCENARIO = {
    "title": "Lost luggage",
    "description": "A guest's luggage did not arrive with the shuttle.",
    "required_steps": ["Apologize", "Locate the luggage"],
    "critical_errors": ["Ignoring the customer"],
    "time_pressure": 4,
}


class TestExtractJson:
    def test_plain_object(self):
        assert extract_json_from_text('{"a": 1}') == '{"a": 1}'

    def test_code_block(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```\nDone.'
        assert extract_json_from_text(text) == '{"a": 1}'

    def test_surrounding_prose(self):
        assert extract_json_from_text('Sure! {"a": {"b": 2}} hope that helps') == '{"a": {"b": 2}}'

    def test_no_json(self):
        with pytest.raises(ValueError):
            extract_json_from_text("no braces here")


class TestParseJsonSafely:
    def test_parses(self):
        assert parse_json_safely('{"a": 1}') == {"a": 1}

    def test_invalid_json_raises_agent_output_error(self):
        with pytest.raises(AgentOutputError) as exc_info:
            parse_json_safely("{not json}", agent_name="scenario_creator")
        assert exc_info.value.agent_name == "scenario_creator"

    def test_empty_text(self):
        with pytest.raises(AgentOutputError):
            parse_json_safely("")


class TestValidation:
    def test_validate_agent_output(self):
        scenario = validate_agent_output(VALID_SCENARIO, Scenario, agent_name="scenario_creator")
        assert scenario.title == "Lost luggage"

    def test_validate_agent_output_failure(self):
        with pytest.raises(AgentOutputError) as exc_info:
            validate_agent_output({"title": "x"}, Scenario, agent_name="scenario_creator")
        assert exc_info.value.expected_schema == "Scenario"

    def test_validate_content_passes_instances_through(self):
        scenario = Scenario(**VALID_SCENARIO)
        assert validate_content(scenario, Scenario, "scenario") is scenario

    def test_validate_content_lists_every_problem(self):
        data = {**VALID_SCENARIO, "time_pressure": 11, "required_steps": []}
        with pytest.raises(ContentValidationError) as exc_info:
            validate_content(data, Scenario, "scenario")
        error = exc_info.value
        assert error.kind == "scenario"
        assert len(error.errors) == 2
        assert any(message.startswith("time_pressure") for message in error.errors)
        assert any(message.startswith("required_steps") for message in error.errors)

    def test_duplicate_steps_rejected(self):
        data = {**VALID_SCENARIO, "required_steps": ["Apologize", "Apologize"]}
        with pytest.raises(ContentValidationError):
            validate_content(data, Scenario, "scenario")

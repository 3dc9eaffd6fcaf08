"""
Structured output utilities.

Pulls JSON out of generated text and validates it against Pydantic models.
"""

import json
import re
from typing import Any, Type, TypeVar
from pydantic import BaseModel, ValidationError

from trainer.exceptions import AgentOutputError, ContentValidationError


T = TypeVar("T", bound=BaseModel)


def extract_json_from_text(text: str) -> str:
    """Extract JSON object from text that may contain other content."""
    code_block_match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    if code_block_match:
        return code_block_match.group(1)

    json_match = re.search(r"\{.*\}", text, re.DOTALL)
    if json_match:
        return json_match.group()

    raise ValueError("No JSON object found in text")


def parse_json_safely(text: str, agent_name: str = "unknown") -> dict[str, Any]:
    """Parse a JSON object from generated text, tolerating surrounding prose."""
    try:
        parsed = json.loads(extract_json_from_text(text or ""))
    except (ValueError, TypeError) as e:
        raise AgentOutputError(agent_name=agent_name, expected_schema="valid JSON") from e
    if not isinstance(parsed, dict):
        raise AgentOutputError(agent_name=agent_name, expected_schema="JSON object")
    return parsed


def validate_agent_output(
    output: dict[str, Any],
    model: Type[T],
    agent_name: str = "unknown",
) -> T:
    """Validate and parse agent output against a Pydantic model."""
    try:
        return model.model_validate(output)
    except ValidationError as e:
        raise AgentOutputError(
            agent_name=agent_name,
            expected_schema=model.__name__,
        ) from e


def validate_content(data: Any, model: Type[T], kind: str) -> T:
    """Structural check for produced content; raises ContentValidationError with readable messages."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or kind}: {err['msg']}"
            for err in e.errors()
        ]
        raise ContentValidationError(kind, errors) from e

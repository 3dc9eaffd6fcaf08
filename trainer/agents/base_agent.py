"""
Base Agent for Training Sessions

Abstract base class for all generative agents. Uses LLMService from
shared.services for calls; every call carries a timeout and is attempted once.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Type, Optional
import json
import time
import asyncio
import logging

from pydantic import BaseModel, Field

from shared.services.llm_service import LLMService
from trainer.exceptions import AgentError, AgentExecutionError, AgentTimeoutError
from trainer.models.messages import Message
from trainer.models.scenario import Persona, Scenario
from trainer.utils.schema_utils import parse_json_safely, validate_agent_output


logger = logging.getLogger("trainer.agents")


class AgentContext(BaseModel):
    """Standard context passed to all agents."""

    session_id: str
    turn_id: str
    turn_number: int = 0
    trainee_message: str = ""
    scenario: Optional[Scenario] = None
    persona: Optional[Persona] = None
    history: list[Message] = Field(default_factory=list)
    additional_context: Dict[str, Any] = Field(default_factory=dict)


class BaseAgent(ABC):
    """
    Abstract base class for all generative agents.

    Provides logging, timeout handling and output validation. Subclasses
    that expect plain text override `parse_output`.
    """

    json_mode: bool = True

    def __init__(
        self,
        llm_service: LLMService,
        timeout_seconds: float = 30,
        temperature: float = 0.7,
    ):
        self.llm = llm_service
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self._last_prompt: Optional[str] = None

    @property
    @abstractmethod
    def agent_name(self) -> str:
        ...

    @abstractmethod
    def get_output_model(self) -> Type[BaseModel]:
        ...

    @abstractmethod
    def build_prompt(self, context: AgentContext) -> str:
        ...

    @property
    def last_prompt(self) -> Optional[str]:
        return self._last_prompt

    def parse_output(self, output_text: str, context: AgentContext) -> BaseModel:
        """Default parsing: a JSON object validated against the output model."""
        parsed = parse_json_safely(output_text, agent_name=self.agent_name)
        return validate_agent_output(
            output=parsed,
            model=self.get_output_model(),
            agent_name=self.agent_name,
        )

    async def execute(self, context: AgentContext) -> BaseModel:
        """Execute the agent and return validated output."""
        start_time = time.time()

        logger.info(json.dumps({
            "agent": self.agent_name,
            "event": "started",
            "session_id": context.session_id,
            "turn_id": context.turn_id,
        }))

        try:
            prompt = self.build_prompt(context)
            self._last_prompt = prompt

            loop = asyncio.get_running_loop()
            result = await asyncio.wait_for(
                loop.run_in_executor(
                    None,
                    lambda: self.llm.call(
                        prompt=prompt,
                        json_mode=self.json_mode,
                        temperature=self.temperature,
                    ),
                ),
                timeout=self.timeout_seconds,
            )

            output_text = (result or {}).get("output_text") or ""
            validated = self.parse_output(output_text, context)

            duration_ms = int((time.time() - start_time) * 1000)
            logger.info(json.dumps({
                "agent": self.agent_name,
                "event": "completed",
                "turn_id": context.turn_id,
                "duration_ms": duration_ms,
            }))

            return validated

        except asyncio.TimeoutError:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.warning(json.dumps({
                "agent": self.agent_name,
                "event": "timeout",
                "turn_id": context.turn_id,
                "duration_ms": duration_ms,
            }))
            raise AgentTimeoutError(self.agent_name, self.timeout_seconds)

        except AgentError:
            raise

        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(json.dumps({
                "agent": self.agent_name,
                "event": "failed",
                "turn_id": context.turn_id,
                "error": str(e),
                "duration_ms": duration_ms,
            }))
            raise AgentExecutionError(self.agent_name, str(e)) from e

"""
Feedback Writer Agent

Writes the narrative part of the end-of-session report. Scores, grades and
recommendations are computed numerically elsewhere and passed in.
"""

from typing import Type
from pydantic import BaseModel, Field

from trainer.agents.base_agent import BaseAgent, AgentContext
from trainer.prompts.templates import FEEDBACK_TEMPLATE, format_list_for_prompt


class FeedbackNarrative(BaseModel):
    summary: str = Field(min_length=1)
    key_strengths: list[str] = Field(default_factory=list)
    improvement_areas: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)


class FeedbackWriterAgent(BaseAgent):

    @property
    def agent_name(self) -> str:
        return "feedback_writer"

    def get_output_model(self) -> Type[BaseModel]:
        return FeedbackNarrative

    def build_prompt(self, context: AgentContext) -> str:
        data = context.additional_context
        averages = data.get("averages", {})
        return FEEDBACK_TEMPLATE.render(
            title=context.scenario.title if context.scenario else "Training session",
            overall_score=data["overall_score"],
            grade=data["grade"],
            averages=format_list_for_prompt([f"{name}: {score}" for name, score in averages.items()]),
            steps_completed=data.get("steps_completed", 0),
            total_steps=data.get("total_steps", 0),
            critical_errors=", ".join(data.get("critical_errors", [])) or "none",
            strengths=", ".join(data.get("strengths", [])) or "none recorded",
            weaknesses=", ".join(data.get("weaknesses", [])) or "none recorded",
            sop_context=format_list_for_prompt(data.get("sop_passages", [])),
        )

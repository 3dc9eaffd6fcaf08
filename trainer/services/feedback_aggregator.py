"""
Feedback aggregation.

Builds the end-of-session FeedbackReport once a session completes. The
numeric part (scores, trends, grade, recommendations) is always computed
locally; only the narrative comes from the feedback writer agent. If that
agent fails, a deterministic report built from the numbers alone is
returned instead, so a completed session always has feedback.
"""

import json
import logging
from typing import Optional

from trainer.agents.base_agent import AgentContext
from trainer.agents.feedback_writer import FeedbackNarrative, FeedbackWriterAgent
from trainer.exceptions import GenerationError
from trainer.models.evidence import DIMENSIONS
from trainer.models.feedback import (
    CompletionSummary,
    DimensionFeedback,
    FeedbackReport,
    Recommendation,
)
from trainer.models.session_state import SessionState
from trainer.services.retrieval_service import NullRetrievalService, RetrievalService
from trainer.utils.feedback_utils import (
    DIMENSION_LABELS,
    build_recommendations,
    build_resources,
    calculate_overall_score,
    calculate_trend,
    collect_evidence,
    dimension_averages,
    dimension_history,
    fallback_resource,
    grade_for_score,
    top_items,
)

logger = logging.getLogger("trainer.feedback")

FALLBACK_NEXT_STEPS = [
    "Review the scenario's required steps and the related procedures",
    "Practice the same scenario again focusing on your weakest dimension",
    "Request a detailed review with your trainer",
]


def build_completion_summary(state: SessionState) -> CompletionSummary:
    total = len(state.required_steps)
    done = len(state.completed_steps)
    return CompletionSummary(
        steps_completed=done,
        total_steps=total,
        completion_rate=round(done / total * 100) if total else 0,
        critical_error_count=len(state.critical_errors),
        completion_reason=state.completion_reason or "incomplete",
    )


def build_dimension_feedback(state: SessionState, averages: dict[str, int]) -> list[DimensionFeedback]:
    items = []
    for dimension in DIMENSIONS:
        positives, negatives = collect_evidence(state.score_history, dimension)
        items.append(DimensionFeedback(
            dimension=dimension,
            average_score=averages[dimension],
            trend=calculate_trend(dimension_history(state.score_history, dimension)),
            strengths=top_items(positives),
            weaknesses=top_items(negatives),
        ))
    return items


class FeedbackAggregator:
    """Turns a completed session's score history into a FeedbackReport."""

    def __init__(self, agent: FeedbackWriterAgent, retrieval: Optional[RetrievalService] = None):
        self.agent = agent
        self.retrieval = retrieval or NullRetrievalService()

    async def build_report(self, state: SessionState) -> FeedbackReport:
        """
        Build the report for a session.

        Never raises for generation or retrieval problems; the narrative
        falls back to a deterministic summary.
        """
        averages = dimension_averages(state.score_history)
        overall = calculate_overall_score(state.score_history)
        grade = grade_for_score(overall)
        dimensions = build_dimension_feedback(state, averages)

        all_positives: list[str] = []
        all_negatives: list[str] = []
        for dimension in DIMENSIONS:
            positives, negatives = collect_evidence(state.score_history, dimension)
            all_positives.extend(positives)
            all_negatives.extend(negatives)
        strengths = top_items(all_positives)
        weaknesses = top_items(all_negatives)

        completion = build_completion_summary(state)
        recommendations = build_recommendations(averages, state.critical_errors)

        title = state.scenario.title if state.scenario else "customer service"
        passages = [
            passage.content
            for passage in await self.retrieval.retrieve_or_empty(
                f"Procedures for: {title}", filters={"category": "sop"}
            )
        ]

        context = AgentContext(
            session_id=state.session_id,
            turn_id="feedback",
            turn_number=state.turn_count,
            scenario=state.scenario,
            persona=state.persona,
            history=list(state.conversation),
            additional_context={
                "overall_score": overall,
                "grade": grade,
                "averages": {DIMENSION_LABELS[name]: score for name, score in averages.items()},
                "steps_completed": completion.steps_completed,
                "total_steps": completion.total_steps,
                "critical_errors": list(state.critical_errors),
                "strengths": strengths,
                "weaknesses": weaknesses,
                "sop_passages": passages,
            },
        )

        try:
            narrative: FeedbackNarrative = await self.agent.execute(context)
        except GenerationError as e:
            logger.warning(json.dumps({
                "event": "feedback_fallback",
                "session_id": state.session_id,
                "error_type": type(e).__name__,
                "error": str(e),
            }))
            return self._fallback_report(
                state, overall, grade, dimensions, strengths, weaknesses, completion, recommendations
            )

        report = FeedbackReport(
            session_id=state.session_id,
            overall_score=overall,
            grade=grade,
            summary=narrative.summary,
            strengths=narrative.key_strengths or strengths,
            weaknesses=narrative.improvement_areas or weaknesses,
            dimensions=dimensions,
            recommendations=recommendations,
            resources=build_resources(averages, passages),
            next_steps=narrative.next_steps,
            completion=completion,
            critical_errors=list(state.critical_errors),
        )

        logger.info(json.dumps({
            "event": "feedback_generated",
            "session_id": state.session_id,
            "overall_score": overall,
            "grade": grade,
            "recommendations": len(recommendations),
        }))
        return report

    @staticmethod
    def _fallback_report(
        state: SessionState,
        overall: int,
        grade: str,
        dimensions: list[DimensionFeedback],
        strengths: list[str],
        weaknesses: list[str],
        completion: CompletionSummary,
        recommendations: list[Recommendation],
    ) -> FeedbackReport:
        if recommendations:
            primary = recommendations[0]
        else:
            primary = Recommendation(
                category="general",
                priority="medium",
                recommendation="Continue practicing similar scenarios to build consistency",
                action_items=["Repeat this scenario", "Try a scenario at the next training level"],
            )

        return FeedbackReport(
            session_id=state.session_id,
            overall_score=overall,
            grade=grade,
            summary=(
                f"Session completed with an overall score of {overall} (grade {grade}). "
                f"{completion.steps_completed} of {completion.total_steps} required steps were completed. "
                "Detailed analysis is unavailable due to system limitations."
            ),
            strengths=strengths,
            weaknesses=weaknesses,
            dimensions=dimensions,
            recommendations=[primary],
            resources=[fallback_resource()],
            next_steps=list(FALLBACK_NEXT_STEPS),
            completion=completion,
            critical_errors=list(state.critical_errors),
            is_fallback=True,
        )

"""
Scoring and evidence engine.

Silently grades each trainee turn: five-dimension evidence from the scorer
agent, critical-error flags and newly completed steps. When the scorer is
unavailable every dimension defaults to 50 and rule-based critical-error
detection still runs on the trainee text.
"""

import json
import logging
from typing import Optional, Sequence

from trainer.agents.base_agent import AgentContext
from trainer.agents.silent_scorer import SilentScorerAgent
from trainer.exceptions import GenerationError
from trainer.models.evidence import ScoringEvidence, TurnAssessment
from trainer.models.messages import Message
from trainer.models.scenario import Persona, Scenario
from trainer.services.retrieval_service import NullRetrievalService, RetrievalService
from trainer.utils.scoring_utils import detect_completed_steps, detect_critical_errors

logger = logging.getLogger("trainer.scoring")


class ScoringEngine:

    def __init__(self, agent: SilentScorerAgent, retrieval: Optional[RetrievalService] = None):
        self.agent = agent
        self.retrieval = retrieval or NullRetrievalService()

    async def score_turn(
        self,
        session_id: str,
        turn_id: str,
        trainee_message: str,
        history: Sequence[Message],
        scenario: Scenario,
        persona: Persona,
        completed_steps: Sequence[str],
    ) -> TurnAssessment:
        passages = [
            passage.content
            for passage in await self.retrieval.retrieve_or_empty(
                f"{scenario.title}: {trainee_message}", filters={"category": "sop"}
            )
        ]

        context = AgentContext(
            session_id=session_id,
            turn_id=turn_id,
            trainee_message=trainee_message,
            scenario=scenario,
            persona=persona,
            history=list(history),
            additional_context={"sop_passages": passages},
        )

        fallback_used = False
        error: Optional[str] = None
        try:
            evidence: ScoringEvidence = await self.agent.execute(context)
            if evidence.fully_defaulted:
                fallback_used = True
                error = "no dimension could be parsed"
        except GenerationError as e:
            evidence = ScoringEvidence.unavailable()
            fallback_used = True
            error = str(e)

        if fallback_used:
            logger.warning(json.dumps({
                "event": "scoring_fallback",
                "session_id": session_id,
                "turn_id": turn_id,
                "error": error,
            }))

        return TurnAssessment(
            evidence=evidence,
            critical_errors=detect_critical_errors(trainee_message, scenario, persona, evidence),
            completed_steps=detect_completed_steps(
                trainee_message, scenario.required_steps, completed_steps, evidence
            ),
            fallback_used=fallback_used,
            retrieved_context=passages,
            error=error,
        )

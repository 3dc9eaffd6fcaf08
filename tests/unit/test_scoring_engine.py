"""Unit tests for trainer/services/scoring_engine.py"""

import pytest
from unittest.mock import AsyncMock, Mock

from trainer.agents.silent_scorer import SilentScorerAgent
from trainer.exceptions import AgentTimeoutError
from trainer.models.evidence import UNAVAILABLE_EVIDENCE
from trainer.models.messages import create_guest_message
from trainer.services.scoring_engine import ScoringEngine


HISTORY = [create_guest_message("My reservation is gone and it is midnight.")]


def make_engine(llm, retrieval=None):
    return ScoringEngine(SilentScorerAgent(llm, timeout_seconds=5), retrieval=retrieval)


async def score(engine, text, scenario, persona, completed=()):
    return await engine.score_turn("train_1", "turn_1", text, HISTORY, scenario, persona, list(completed))


class TestScoreTurn:
    @pytest.mark.asyncio
    async def test_parsed_evidence(self, fake_llm_factory, scenario, persona):
        assessment = await score(make_engine(fake_llm_factory()), "Let me look into this.", scenario, persona)

        assert assessment.fallback_used is False
        assert assessment.error is None
        assert assessment.evidence.scores == {
            "policy_adherence": 80,
            "empathy_index": 80,
            "completeness": 80,
            "escalation_judgment": 80,
            "time_efficiency": 80,
        }
        assert assessment.evidence.empathy_index.evidence == ["acknowledged frustration"]

    @pytest.mark.asyncio
    async def test_detects_completed_steps(self, fake_llm_factory, scenario, persona):
        assessment = await score(make_engine(fake_llm_factory()), "I'm so sorry for the trouble.", scenario, persona)
        assert "Apologize for the inconvenience" in assessment.completed_steps

    @pytest.mark.asyncio
    async def test_already_completed_steps_not_repeated(self, fake_llm_factory, scenario, persona):
        assessment = await score(
            make_engine(fake_llm_factory()),
            "I'm so sorry for the trouble.",
            scenario,
            persona,
            completed=["Apologize for the inconvenience"],
        )
        assert "Apologize for the inconvenience" not in assessment.completed_steps

    @pytest.mark.asyncio
    async def test_detects_critical_errors(self, fake_llm_factory, scenario, persona):
        assessment = await score(make_engine(fake_llm_factory()), "Honestly, that's your fault.", scenario, persona)
        assert assessment.critical_errors == ["Critical error detected: Blaming the guest"]

    @pytest.mark.asyncio
    async def test_sop_context_reaches_prompt(self, keyword_retrieval_factory, scenario, persona):
        llm = Mock()
        llm.call.return_value = {"output_text": "POLICY_ADHERENCE: 70 | Evidence: ok"}
        retrieval = keyword_retrieval_factory([
            {"content": "Walk overbooked guests to a partner hotel.", "metadata": {"category": "sop"}},
            {"content": "Overbooked scenario template.", "metadata": {"category": "scenario"}},
        ])
        engine = make_engine(llm, retrieval)

        assessment = await score(engine, "We are overbooked tonight.", scenario, persona)

        assert assessment.retrieved_context == ["Walk overbooked guests to a partner hotel."]
        assert "Walk overbooked guests to a partner hotel." in llm.call.call_args.kwargs["prompt"]


class TestScoringFallback:
    @pytest.mark.asyncio
    async def test_generation_failure_defaults_every_dimension(self, fake_llm_factory, scenario, persona):
        assessment = await score(make_engine(fake_llm_factory(fail=["scoring"])), "Okay.", scenario, persona)

        assert assessment.fallback_used is True
        assert set(assessment.evidence.scores.values()) == {50}
        assert assessment.evidence.policy_adherence.evidence == [UNAVAILABLE_EVIDENCE]
        assert "scoring generation unavailable" in assessment.error

    @pytest.mark.asyncio
    async def test_rules_still_run_without_scorer(self, fake_llm_factory, scenario, persona):
        engine = make_engine(fake_llm_factory(fail=["scoring"]))
        assessment = await score(engine, "There is nothing we can do.", scenario, persona)
        assert assessment.critical_errors == ["Critical error detected: Refusing to help"]

    @pytest.mark.asyncio
    async def test_unparseable_output_counts_as_fallback(self, fake_llm_factory, scenario, persona):
        engine = make_engine(fake_llm_factory(scoring="I'd rather not grade this."))
        assessment = await score(engine, "Okay.", scenario, persona)

        assert assessment.fallback_used is True
        assert assessment.error == "no dimension could be parsed"

    @pytest.mark.asyncio
    async def test_partial_output_is_not_a_fallback(self, fake_llm_factory, scenario, persona):
        engine = make_engine(fake_llm_factory(scoring="EMPATHY_INDEX: 90 | Evidence: warm"))
        assessment = await score(engine, "Okay.", scenario, persona)

        assert assessment.fallback_used is False
        assert assessment.evidence.empathy_index.score == 90
        assert assessment.evidence.completeness.score == 50

    @pytest.mark.asyncio
    async def test_timeout(self, scenario, persona):
        agent = Mock(spec=SilentScorerAgent)
        agent.execute = AsyncMock(side_effect=AgentTimeoutError("silent_scorer", 5))
        assessment = await ScoringEngine(agent).score_turn(
            "train_1", "turn_1", "Okay.", [], scenario, persona, []
        )
        assert assessment.fallback_used is True
        assert assessment.evidence.overall == 50

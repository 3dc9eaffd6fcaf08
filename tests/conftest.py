"""Pytest configuration and shared fixtures."""
import json
import re
import pytest

from config import Settings, reset_settings
from trainer.exceptions import RetrievalError
from trainer.models.scenario import Persona, PsychologicalProfile, Scenario
from trainer.services.retrieval_service import RetrievalService, RetrievedPassage


SCENARIO_JSON = json.dumps({
    "title": "Overbooked Hotel Room",
    "description": "A guest arrives late at night to find the hotel overbooked and the room given away.",
    "required_steps": ["Apologize for the inconvenience", "Offer an alternative room"],
    "critical_errors": ["Blaming the guest"],
    "time_pressure": 7,
})

PERSONA_JSON = json.dumps({
    "name": "Maria",
    "background": (
        "Maria booked months in advance. An important meeting is scheduled for "
        "tomorrow morning. The flight was delayed by four hours."
    ),
    "personality_traits": ["Detail-oriented", "Passionate about punctuality"],
    "hidden_motivations": ["Needs to sleep near the meeting venue", "Worried about the presentation"],
    "communication_style": "Direct and polite but firm",
    "emotional_arc": ["concerned", "frustrated", "angry", "satisfied"],
    "psychological_profile": {
        "primary_motivation": "Keeping commitments",
        "stress_response": "Becomes curt",
        "communication_pattern": "Direct and precise",
        "emotional_triggers": ["Excuses"],
        "resolution_style": "Wants a concrete plan",
    },
})

SCORING_TEXT = """POLICY_ADHERENCE: 80 | Evidence: followed overbooking policy | Violations: none
EMPATHY_INDEX: 80 | Evidence: acknowledged frustration | Missed: none
COMPLETENESS: 80 | Evidence: addressed the room issue | Missing: none
ESCALATION_JUDGMENT: 80 | Evidence: handled at front desk | Issues: none
TIME_EFFICIENCY: 80 | Evidence: quick resolution | Inefficiencies: none"""

FEEDBACK_JSON = json.dumps({
    "summary": "A calm, well-structured handling of an overbooking.",
    "key_strengths": ["Warm apology"],
    "improvement_areas": ["Offer options sooner"],
    "next_steps": ["Practice a walk-in overbooking scenario"],
})

GUEST_TEXT = "I am really annoyed. I booked this room months ago and I need it tonight."


class FakeLLM:
    """
    Stand-in for LLMService that answers by prompt type.

    `fail` names prompt kinds (scenario, persona, guest, scoring, feedback)
    whose calls raise instead of answering.
    """

    def __init__(self, fail=(), **outputs):
        self.fail = set(fail)
        self.outputs = {
            "scenario": SCENARIO_JSON,
            "persona": PERSONA_JSON,
            "guest": GUEST_TEXT,
            "scoring": SCORING_TEXT,
            "feedback": FEEDBACK_JSON,
        }
        self.outputs.update(outputs)
        self.calls = []

    @staticmethod
    def kind(prompt: str) -> str:
        if "training scenario designer" in prompt:
            return "scenario"
        if "Create the guest a trainee" in prompt:
            return "persona"
        if "silent scoring agent" in prompt:
            return "scoring"
        if "training coach" in prompt:
            return "feedback"
        return "guest"

    def call(self, prompt, json_mode=False, temperature=0.7):
        kind = self.kind(prompt)
        self.calls.append(kind)
        if "all" in self.fail or kind in self.fail:
            raise RuntimeError(f"{kind} generation unavailable")
        return {"output_text": self.outputs[kind], "reasoning": None}


class KeywordRetrieval(RetrievalService):
    """
    In-memory stand-in for the SOP store, ranked by term overlap.

    Passages are dicts with `content`, optional `source` and optional
    `metadata`; filters match metadata values exactly.
    """

    _TOKEN = re.compile(r"[a-z0-9']+")

    def __init__(self, passages=()):
        self.passages = [
            RetrievedPassage(content=p["content"], source=p.get("source", "sop"), metadata=p.get("metadata", {}))
            for p in passages
        ]
        self.queries = []

    def retrieve(self, query, filters=None, limit=3):
        self.queries.append(query)
        if not query or not query.strip():
            raise RetrievalError(query or "", "empty query")

        terms = set(self._TOKEN.findall(query.lower()))
        ranked = []
        for index, passage in enumerate(self.passages):
            if filters and any(passage.metadata.get(k) != v for k, v in filters.items()):
                continue
            overlap = len(terms & set(self._TOKEN.findall(passage.content.lower())))
            if overlap:
                ranked.append((overlap / len(terms), index, passage))
        ranked.sort(key=lambda item: (-item[0], item[1]))
        return [p.model_copy(update={"score": round(s, 3)}) for s, _, p in ranked[:limit]]


@pytest.fixture
def fake_llm_factory():
    return FakeLLM


@pytest.fixture
def keyword_retrieval_factory():
    return KeywordRetrieval


@pytest.fixture
def settings():
    return Settings(openai_api_key="test-key", max_turns=20, generation_timeout_seconds=5)


@pytest.fixture(autouse=True)
def _reset_settings():
    yield
    reset_settings()


@pytest.fixture
def scenario():
    return Scenario(
        title="Overbooked Hotel Room",
        description="A guest arrives late at night to find the hotel overbooked and the room given away.",
        required_steps=[
            "Acknowledge the guest's frustration",
            "Apologize for the inconvenience",
            "Offer an alternative room",
            "Arrange compensation",
        ],
        critical_errors=["Blaming the guest", "Refusing to help"],
        time_pressure=7,
    )


@pytest.fixture
def persona():
    return Persona(
        name="Maria",
        background=(
            "Maria booked months in advance. An important meeting is scheduled for "
            "tomorrow morning. The flight was delayed by four hours."
        ),
        personality_traits=["Detail-oriented", "Passionate about punctuality"],
        hidden_motivations=["Needs to sleep near the meeting venue", "Worried about the presentation"],
        communication_style="Direct and polite but firm",
        emotional_arc=["concerned", "frustrated", "angry", "satisfied"],
        psychological_profile=PsychologicalProfile(
            primary_motivation="Keeping commitments",
            communication_pattern="Direct and precise",
        ),
    )

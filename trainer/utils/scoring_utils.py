"""
Scoring utilities.

Parses the scorer's labeled score lines into ScoringEvidence, detects
critical errors and decides which required steps a trainee turn satisfied.
All clamping and defaulting of upstream scores happens in
trainer.models.evidence; the state machine never looks at raw text.
"""

import re
from typing import Iterable, Optional

from trainer.models.evidence import DIMENSIONS, DimensionEvidence, ScoringEvidence
from trainer.models.scenario import Persona, Scenario
from trainer.utils.vocabulary import (
    CRITICAL_ERROR_PATTERNS,
    GENERIC_STOPWORDS,
    NEGATIVE_EMOTIONS,
    STEP_COMPLETION_RULES,
)


ISSUE_LABELS: dict[str, str] = {
    "policy_adherence": "Violations",
    "empathy_index": "Missed",
    "completeness": "Missing",
    "escalation_judgment": "Issues",
    "time_efficiency": "Inefficiencies",
}

SEVERE_POLICY_SCORE = 30
SEVERE_ESCALATION_SCORE = 20
NO_EMPATHY_SCORE = 15

_SCORE = re.compile(r"(-?\d+(?:\.\d+)?)")
_EMPTY_ITEMS = {"none", "n/a", "na", "-", "nothing"}


def _line_pattern(dimension: str) -> re.Pattern:
    # Models number the lines ("1. ") and write labels with spaces as often as underscores.
    label = "[ _]".join(dimension.upper().split("_"))
    return re.compile(rf"^\W*(?:\d+[.)]\s*)?\W*{label}\W*:(.*)$", re.IGNORECASE)


_LINE_PATTERNS = {dimension: _line_pattern(dimension) for dimension in DIMENSIONS}


def _split_items(value: str) -> list[str]:
    items = [item.strip().strip("[]").strip() for item in value.split(",")]
    return [item for item in items if item and item.lower() not in _EMPTY_ITEMS]


def parse_score_line(body: str, issue_label: str) -> DimensionEvidence:
    """
    Parse the part of a score line after 'DIMENSION:'.

    Expected: '[score] | Evidence: a, b | <IssueLabel>: x, y'.
    """
    parts = [part.strip() for part in body.split("|")]
    match = _SCORE.search(parts[0]) if parts else None
    if not match:
        return DimensionEvidence.unavailable()

    evidence: list[str] = []
    issues: list[str] = []
    issue_keys = {issue_label.lower(), *(label.lower() for label in ISSUE_LABELS.values())}
    for part in parts[1:]:
        key, _, value = part.partition(":")
        key = key.strip().lower()
        if key == "evidence":
            evidence = _split_items(value)
        elif key in issue_keys:
            issues = _split_items(value)

    return DimensionEvidence(score=match.group(1), evidence=evidence, issues=issues, parsed=True)


def parse_scoring_response(text: str) -> ScoringEvidence:
    """Parse each dimension independently; missing or broken lines default to 50."""
    found: dict[str, DimensionEvidence] = {}
    for line in (text or "").splitlines():
        line = line.strip()
        if not line:
            continue
        for dimension, pattern in _LINE_PATTERNS.items():
            if dimension in found:
                continue
            match = pattern.match(line)
            if match:
                found[dimension] = parse_score_line(match.group(1), ISSUE_LABELS[dimension])
                break

    return ScoringEvidence(**{
        dimension: found.get(dimension, DimensionEvidence.unavailable())
        for dimension in DIMENSIONS
    })


def _keywords(label: str) -> list[str]:
    return [
        word for word in re.findall(r"[a-z'-]+", label.lower())
        if len(word) > 3 and word not in GENERIC_STOPWORDS
    ]


def matches_critical_error(text: str, label: str) -> bool:
    """Hand-authored failure phrasings first, then keyword overlap."""
    text_lower = text.lower()
    label_lower = label.lower()

    for keyword, (any_of, all_of) in CRITICAL_ERROR_PATTERNS.items():
        if keyword not in label_lower:
            continue
        if any_of and any(phrase in text_lower for phrase in any_of):
            return True
        if all_of and all(phrase in text_lower for phrase in all_of):
            return True

    return any(keyword in text_lower for keyword in _keywords(label))


def is_emotional_situation(persona: Optional[Persona]) -> bool:
    if persona is None:
        return False
    return any(
        negative in stage.lower()
        for stage in persona.emotional_arc
        for negative in NEGATIVE_EMOTIONS
    )


def detect_critical_errors(
    text: str,
    scenario: Scenario,
    persona: Optional[Persona],
    evidence: ScoringEvidence,
) -> list[str]:
    errors = [
        f"Critical error detected: {label}"
        for label in scenario.critical_errors
        if matches_critical_error(text, label)
    ]

    policy = evidence.policy_adherence
    if policy.score < SEVERE_POLICY_SCORE and policy.issues:
        errors.append(f"Severe policy violation: {policy.issues[0]}")

    escalation = evidence.escalation_judgment
    if escalation.score < SEVERE_ESCALATION_SCORE and escalation.issues:
        errors.append(f"Inappropriate escalation: {escalation.issues[0]}")

    if evidence.empathy_index.score < NO_EMPATHY_SCORE and is_emotional_situation(persona):
        errors.append("Complete lack of empathy in emotional situation")

    return list(dict.fromkeys(errors))


def step_completed(text: str, step: str, evidence: ScoringEvidence) -> bool:
    text_lower = text.lower()
    step_lower = step.lower()

    for keyword, phrases, dimension, threshold in STEP_COMPLETION_RULES:
        if keyword in step_lower and any(phrase in text_lower for phrase in phrases):
            return evidence.dimension(dimension).score > threshold

    has_keywords = any(keyword in text_lower for keyword in _keywords(step))
    return has_keywords and evidence.completeness.score > 60 and evidence.policy_adherence.score > 50


def detect_completed_steps(
    text: str,
    required_steps: Iterable[str],
    already_completed: Iterable[str],
    evidence: ScoringEvidence,
) -> list[str]:
    """Steps newly satisfied by this turn. Previously completed steps are not re-checked."""
    done = set(already_completed)
    return [
        step for step in required_steps
        if step not in done and step_completed(text, step, evidence)
    ]

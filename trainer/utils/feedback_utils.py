"""
Feedback aggregation utilities.

Numeric side of the end-of-session report: weighted averages, per-dimension
trends, grades, evidence frequency and recommendation synthesis.
"""

from collections import Counter
from typing import Sequence

from trainer.models.evidence import DIMENSIONS, DIMENSION_WEIGHTS, UNAVAILABLE_EVIDENCE, ScoringEvidence
from trainer.models.feedback import Grade, Recommendation, Resource, Trend


TREND_THRESHOLD = 5
MIN_TREND_SNAPSHOTS = 3
WEAK_DIMENSION_SCORE = 70
HIGH_PRIORITY_SCORE = 50

GRADE_THRESHOLDS: tuple[tuple[int, Grade], ...] = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

DIMENSION_LABELS = {
    "policy_adherence": "Policy Adherence",
    "empathy_index": "Empathy Index",
    "completeness": "Completeness",
    "escalation_judgment": "Escalation Judgment",
    "time_efficiency": "Time Efficiency",
}

# dimension -> (category, recommendation, action items, resource)
_IMPROVEMENT_PLAYBOOK: dict[str, tuple[str, str, list[str], Resource]] = {
    "policy_adherence": (
        "policy",
        "Strengthen knowledge and application of standard operating procedures",
        ["Review the relevant SOP sections", "Practice policy application scenarios"],
        Resource(
            type="sop_section",
            title="Policy Guidelines Quick Reference",
            description="Core procedures for common guest situations",
            relevance="Addresses gaps in policy adherence",
        ),
    ),
    "empathy_index": (
        "empathy",
        "Acknowledge guest feelings before moving to solutions",
        ["Name the guest's emotion explicitly", "Use validating phrases before problem solving"],
        Resource(
            type="training_material",
            title="Empathetic Communication Workshop",
            description="Techniques for active listening and emotional validation",
            relevance="Builds empathy in difficult conversations",
        ),
    ),
    "completeness": (
        "communication",
        "Address every guest concern fully before closing a topic",
        ["Summarize the guest's requests before answering", "Confirm nothing is left open"],
        Resource(
            type="script_template",
            title="Complete Resolution Checklist",
            description="A step-by-step checklist for covering all guest needs",
            relevance="Improves response completeness",
        ),
    ),
    "escalation_judgment": (
        "escalation",
        "Escalate at the right time and to the right level",
        ["Review escalation criteria", "Explain to the guest why and how an issue is escalated"],
        Resource(
            type="sop_section",
            title="Escalation Procedures",
            description="When and how to involve a supervisor or specialist team",
            relevance="Clarifies escalation decisions",
        ),
    ),
    "time_efficiency": (
        "efficiency",
        "Move conversations toward resolution with fewer exchanges",
        ["Ask targeted questions", "Offer a concrete next step in every response"],
        Resource(
            type="script_template",
            title="Efficient Communication Templates",
            description="Concise response patterns for frequent requests",
            relevance="Reduces unnecessary back-and-forth",
        ),
    ),
}

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def dimension_history(snapshots: Sequence[ScoringEvidence], dimension: str) -> list[int]:
    return [snapshot.dimension(dimension).score for snapshot in snapshots]


def average(values: Sequence[float]) -> int:
    if not values:
        return 0
    return round(sum(values) / len(values))


def dimension_averages(snapshots: Sequence[ScoringEvidence]) -> dict[str, int]:
    return {dimension: average(dimension_history(snapshots, dimension)) for dimension in DIMENSIONS}


def calculate_overall_score(snapshots: Sequence[ScoringEvidence]) -> int:
    """Weighted score per snapshot, averaged across the session."""
    if not snapshots:
        return 0
    weighted = [
        sum(snapshot.dimension(dimension).score * weight for dimension, weight in DIMENSION_WEIGHTS.items())
        for snapshot in snapshots
    ]
    return average(weighted)


def calculate_trend(scores: Sequence[float]) -> Trend:
    """
    Compare the first half of a score history with the second half.

    Fewer than three scores is always "stable".
    """
    if len(scores) < MIN_TREND_SNAPSHOTS:
        return "stable"
    middle = len(scores) // 2
    first, second = scores[:middle], scores[middle:]
    difference = sum(second) / len(second) - sum(first) / len(first)
    if difference > TREND_THRESHOLD:
        return "improving"
    if difference < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def grade_for_score(score: int) -> Grade:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def top_items(items: Sequence[str], limit: int = 3) -> list[str]:
    """Most frequent items; ties keep first-seen order."""
    counts = Counter(item for item in items if item and item != UNAVAILABLE_EVIDENCE)
    return [item for item, _ in counts.most_common(limit)]


def collect_evidence(snapshots: Sequence[ScoringEvidence], dimension: str) -> tuple[list[str], list[str]]:
    positives: list[str] = []
    negatives: list[str] = []
    for snapshot in snapshots:
        entry = snapshot.dimension(dimension)
        positives.extend(entry.evidence)
        negatives.extend(entry.issues)
    return positives, negatives


def build_recommendations(averages: dict[str, int], critical_errors: Sequence[str]) -> list[Recommendation]:
    recommendations = []
    for dimension in DIMENSIONS:
        score = averages.get(dimension, 0)
        if score >= WEAK_DIMENSION_SCORE:
            continue
        category, text, actions, _ = _IMPROVEMENT_PLAYBOOK[dimension]
        recommendations.append(Recommendation(
            category=category,
            priority="high" if score < HIGH_PRIORITY_SCORE else "medium",
            recommendation=text,
            action_items=list(actions),
        ))

    if critical_errors:
        recommendations.append(Recommendation(
            category="policy",
            priority="high",
            recommendation=f"Avoid critical errors: {len(critical_errors)} occurred during this session",
            action_items=["Review each critical error and the correct handling", "Practice the scenario again"],
        ))

    return sorted(recommendations, key=lambda rec: _PRIORITY_ORDER[rec.priority])


def build_resources(averages: dict[str, int], passages: Sequence[str] = ()) -> list[Resource]:
    resources = [
        _IMPROVEMENT_PLAYBOOK[dimension][3]
        for dimension in DIMENSIONS
        if averages.get(dimension, 0) < WEAK_DIMENSION_SCORE
    ]
    for passage in passages[:2]:
        resources.append(Resource(
            type="sop_section",
            title="Relevant SOP Excerpt",
            description=passage[:200],
            relevance="Retrieved for this session's scenario",
        ))
    return resources


def fallback_resource() -> Resource:
    return _IMPROVEMENT_PLAYBOOK["policy_adherence"][3]

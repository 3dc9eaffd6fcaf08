"""
Completion policy.

Decides whether a session should end after a turn, and records exactly one
reason. Conditions are checked in priority order and the first true one wins:

1. all required steps completed      -> "all-steps-completed"
2. critical errors >= threshold      -> "critical-error-threshold"
3. turn count >= max turns           -> "max-turns-reached"
4. enough steps done, enough turns   -> "natural-conclusion"
"""

import math
from typing import Optional

from trainer.models.session_state import CompletionDecision, SessionState


def natural_conclusion_target(required_count: int, ratio: float) -> int:
    """Completed steps needed for a natural conclusion (rounded up)."""
    return math.ceil(required_count * ratio - 1e-9)


def evaluate_completion(
    state: SessionState,
    critical_error_threshold: int = 3,
    max_turns: Optional[int] = None,
    natural_conclusion_ratio: float = 0.8,
    natural_conclusion_min_turns: int = 5,
) -> CompletionDecision:
    required = set(state.required_steps)
    completed = set(state.completed_steps) & required
    turn_limit = max_turns if max_turns is not None else state.max_turns

    if required and completed == required:
        return CompletionDecision(should_terminate=True, reason="all-steps-completed")

    if len(state.critical_errors) >= critical_error_threshold:
        return CompletionDecision(should_terminate=True, reason="critical-error-threshold")

    if state.turn_count >= turn_limit:
        return CompletionDecision(should_terminate=True, reason="max-turns-reached")

    if (
        required
        and len(completed) >= natural_conclusion_target(len(required), natural_conclusion_ratio)
        and state.turn_count >= natural_conclusion_min_turns
    ):
        return CompletionDecision(should_terminate=True, reason="natural-conclusion")

    return CompletionDecision.keep_going()

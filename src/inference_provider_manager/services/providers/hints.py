"""Advisory hints for failed Helm steps.

Hints only annotate a failure message; they never change which error is
raised. Rules are evaluated in order and every matching rule contributes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class FailureHint:
    """A stderr predicate paired with the advice it triggers."""

    name: str
    matches: Callable[[str], bool]
    hint: str


def _mentions_timeout(stderr: str) -> bool:
    return "timed out" in stderr or "timeout" in stderr


def _mentions_crd_conflict(stderr: str) -> bool:
    return "conflict" in stderr and "crd" in stderr


FAILURE_HINTS: tuple[FailureHint, ...] = (
    FailureHint(
        name="timeout",
        matches=_mentions_timeout,
        hint=(
            "The operation may still be converging in the cluster. "
            "Poll the provider status, or clean up the release manually if it stays pending."
        ),
    ),
    FailureHint(
        name="crd_conflict",
        matches=_mentions_crd_conflict,
        hint=(
            "Another operator (for example the NVIDIA GPU Operator) likely already "
            "owns these CRDs."
        ),
    ),
)


def matching_hints(
    stderr: str | None,
    rules: tuple[FailureHint, ...] = FAILURE_HINTS,
) -> list[FailureHint]:
    """Return the rules whose predicate matches ``stderr`` (case-insensitive)."""
    if not stderr:
        return []
    lowered = stderr.lower()
    return [rule for rule in rules if rule.matches(lowered)]


def failure_hint(
    stderr: str | None,
    rules: tuple[FailureHint, ...] = FAILURE_HINTS,
) -> str | None:
    """Combined advisory text for a failed step, or None."""
    hints = [rule.hint for rule in matching_hints(stderr, rules)]
    return " ".join(hints) if hints else None

"""Score guardrails enforced on every classifier-proposed update."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.domain.model import Category, CategoryScore

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schema import CategoryAssessment

log = getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100


def apply_guardrails(
    current: Mapping[Category, CategoryScore],
    proposed: Mapping[str, CategoryAssessment],
    new_counts: Mapping[Category, int],
    *,
    max_delta: int,
) -> dict[Category, CategoryScore]:
    """Clamp proposed scores.

    A category may rise by at most ``max_delta`` per condensation and may not rise
    at all without new fragments. Decreases pass through. Unknown keys are dropped.
    """

    unknown = set(proposed) - {category.value for category in Category}
    if unknown:
        log.debug(f"Ignoring unknown categories in condensation result: {sorted(unknown)}")

    result: dict[Category, CategoryScore] = {}
    for category in Category:
        before = current.get(category, CategoryScore())
        assessment = proposed.get(category.value)
        if assessment is None:
            result[category] = before
            continue

        ceiling = before.score + max_delta if new_counts.get(category, 0) > 0 else before.score
        score = max(MIN_SCORE, min(MAX_SCORE, assessment.score))
        if score > ceiling:
            log.info(
                "Clamping %s score from %d to %d (was %d)",
                category.value,
                score,
                ceiling,
                before.score,
            )
            score = ceiling
        result[category] = CategoryScore(score=score, summary=assessment.summary or before.summary)
    return result

"""Depth tiers and the scoring rubric handed to the classifier.

Better-known subjects need proportionally more evidence per point of score: the
fragment counts of every band are multiplied by the tier's multiplier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True, slots=True)
class DepthTier:
    name: str
    min_followers: int
    multiplier: int


DEPTH_TIERS: Final[tuple[DepthTier, ...]] = (
    DepthTier("iconic", 10_000_000, 5),
    DepthTier("prominent", 1_000_000, 3),
    DepthTier("notable", 100_000, 2),
    DepthTier("niche", 0, 1),
)

# (min fragments, max fragments or None, min score, max score) at multiplier 1
SCORE_BANDS: Final[tuple[tuple[int, int | None, int, int], ...]] = (
    (0, 0, 0, 0),
    (1, 2, 1, 15),
    (3, 5, 15, 30),
    (6, 10, 30, 50),
    (11, 20, 50, 70),
    (21, 40, 70, 85),
    (41, None, 85, 100),
)


def depth_tier(follower_count: int) -> DepthTier:
    for tier in DEPTH_TIERS:
        if follower_count >= tier.min_followers:
            return tier
    return DEPTH_TIERS[-1]


def _scaled(count: int, multiplier: int) -> int:
    return count if count == 0 else (count - 1) * multiplier + 1


def render_rubric(tier: DepthTier) -> str:
    lines = [
        f"Depth tier: {tier.name} (evidence multiplier x{tier.multiplier}).",
        "Total accepted fragments in a category -> allowed score range:",
    ]
    for low, high, score_low, score_high in SCORE_BANDS:
        if high is None:
            span = f"{_scaled(low, tier.multiplier)}+"
        elif low == high:
            span = str(low * tier.multiplier)
        else:
            span = f"{_scaled(low, tier.multiplier)}-{high * tier.multiplier}"
        lines.append(f"  {span} fragments: score {score_low}-{score_high}")
    return "\n".join(lines)

"""Condensation: threshold trigger, classifier merge, deterministic fallback."""

from __future__ import annotations

from .engine import CondensationEngine, MergeOutcome, MergeSource, fallback_merge
from .guardrails import apply_guardrails
from .rubric import DEPTH_TIERS, DepthTier, depth_tier, render_rubric
from .schema import CategoryAssessment, CondensationResult

__all__ = [
    "DEPTH_TIERS",
    "CategoryAssessment",
    "CondensationEngine",
    "CondensationResult",
    "DepthTier",
    "MergeOutcome",
    "MergeSource",
    "apply_guardrails",
    "depth_tier",
    "fallback_merge",
    "render_rubric",
]

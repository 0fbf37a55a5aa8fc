"""Fragment review: context loading, classifier verdicts and their application."""

from __future__ import annotations

from .engine import CurationEngine, DecisionSource, ReviewDecision
from .schema import BatchReviewResult, IndexedVerdict, ReviewVerdict

__all__ = [
    "BatchReviewResult",
    "CurationEngine",
    "DecisionSource",
    "IndexedVerdict",
    "ReviewDecision",
    "ReviewVerdict",
]

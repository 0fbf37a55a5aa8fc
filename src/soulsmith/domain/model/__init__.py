"""Domain model for souls, fragments, submitters and condensations."""

from __future__ import annotations

from .base import Entity, new_id, utcnow
from .enums import (
    Category,
    FragmentStatus,
    LedgerEventKind,
    LedgerEventStatus,
    Stage,
    SubmitterStatus,
)
from .fragment import Condensation, Fragment, content_digest
from .outbox import LedgerEvent
from .soul import CategoryScore, Soul, empty_scores
from .submitter import Submitter

__all__ = [
    "Category",
    "CategoryScore",
    "Condensation",
    "Entity",
    "Fragment",
    "FragmentStatus",
    "LedgerEvent",
    "LedgerEventKind",
    "LedgerEventStatus",
    "Soul",
    "Stage",
    "Submitter",
    "SubmitterStatus",
    "content_digest",
    "empty_scores",
    "new_id",
    "utcnow",
]

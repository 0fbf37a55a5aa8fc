"""Fragments and the condensation batches that consume them."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from soulsmith.domain.errors import InvariantViolation
from soulsmith.domain.model.base import Entity, utcnow
from soulsmith.domain.model.enums import Category, FragmentStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


def content_digest(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass(eq=False, kw_only=True)
class Fragment(Entity):
    """One contributed claim about a soul.

    Status moves one way only (pending to accepted or rejected) and the condensation
    link is written once, after acceptance.
    """

    soul_id: UUID
    submitter_id: UUID
    category: Category
    content: str
    content_hash: str = ""
    status: FragmentStatus = FragmentStatus.PENDING
    confidence: float | None = None
    reject_reason: str | None = None
    condensation_id: UUID | None = None
    ledger_tx: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    reviewed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.content_hash:
            self.content_hash = content_digest(self.content)

    @property
    def is_pending(self) -> bool:
        return self.status is FragmentStatus.PENDING

    def accept(self, confidence: float) -> None:
        self._require_pending()
        self.status = FragmentStatus.ACCEPTED
        self.confidence = _clamp_confidence(confidence)
        self.reviewed_at = utcnow()

    def reject(self, confidence: float, reason: str) -> None:
        self._require_pending()
        self.status = FragmentStatus.REJECTED
        self.confidence = _clamp_confidence(confidence)
        self.reject_reason = reason
        self.reviewed_at = utcnow()

    def _require_pending(self) -> None:
        if self.status is not FragmentStatus.PENDING:
            raise InvariantViolation(f"Fragment {self.id} already {self.status.value}")


def _clamp_confidence(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


@dataclass(eq=False, kw_only=True)
class Condensation(Entity):
    """One merge of accepted fragments into a new profile version."""

    soul_id: UUID
    version_from: int
    version_to: int
    fragments_merged: int
    profile_document: str
    summary_diff: str
    ledger_tx: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.version_to != self.version_from + 1:
            raise InvariantViolation(
                f"Condensation must advance exactly one version "
                f"({self.version_from} -> {self.version_to})"
            )

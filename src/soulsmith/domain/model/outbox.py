"""Outbox records for ledger side effects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from soulsmith.domain.model.base import Entity, utcnow
from soulsmith.domain.model.enums import LedgerEventKind, LedgerEventStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class LedgerEvent(Entity):
    """A ledger write recorded in the same transaction as the state change it mirrors."""

    kind: LedgerEventKind
    soul_id: UUID
    fragment_id: UUID | None = None
    condensation_id: UUID | None = None
    submitter_id: UUID | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    status: LedgerEventStatus = LedgerEventStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    top_up_tx: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    processed_at: datetime | None = None

    def mark_done(self) -> None:
        self.status = LedgerEventStatus.DONE
        self.last_error = None
        self.processed_at = utcnow()

    def mark_skipped(self, reason: str) -> None:
        self.status = LedgerEventStatus.SKIPPED
        self.last_error = reason
        self.processed_at = utcnow()

    def record_failure(self, error: str, *, max_attempts: int) -> None:
        self.attempts += 1
        self.last_error = error
        if self.attempts >= max_attempts:
            self.status = LedgerEventStatus.DEAD
            self.processed_at = utcnow()

"""Authoring identities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from soulsmith.domain.model.base import Entity, utcnow
from soulsmith.domain.model.enums import SubmitterStatus

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class Submitter(Entity):
    name: str
    api_key_hash: str
    status: SubmitterStatus = SubmitterStatus.PENDING_VERIFICATION
    # custody-held signing account, only used by ledger sync
    wallet_address: str | None = None
    total_submitted: int = 0
    total_accepted: int = 0
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_verified(self) -> bool:
        return self.status is SubmitterStatus.VERIFIED

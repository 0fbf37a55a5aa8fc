"""Builders for ledger outbox records."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from soulsmith.domain.model import LedgerEvent, LedgerEventKind

if TYPE_CHECKING:
    from soulsmith.domain.model import Condensation, Fragment, Soul


def feedback_event(fragment: Fragment) -> LedgerEvent:
    confidence = fragment.confidence if fragment.confidence is not None else 0.0
    return LedgerEvent(
        kind=LedgerEventKind.FEEDBACK,
        soul_id=fragment.soul_id,
        fragment_id=fragment.id,
        submitter_id=fragment.submitter_id,
        payload={
            "category": fragment.category.value,
            "confidence": confidence,
            "content_hash": fragment.content_hash,
        },
    )


def profile_update_event(soul: Soul, condensation: Condensation) -> LedgerEvent:
    return LedgerEvent(
        kind=LedgerEventKind.PROFILE_UPDATE,
        soul_id=soul.id,
        condensation_id=condensation.id,
        payload={
            "version": condensation.version_to,
            "profile_sha256": hashlib.sha256(
                condensation.profile_document.encode("utf-8")
            ).hexdigest(),
        },
    )

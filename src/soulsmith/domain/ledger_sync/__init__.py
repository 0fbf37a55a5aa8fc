"""Best-effort mirroring of pipeline state to the external ledger."""

from __future__ import annotations

from .backfill import BackfillJob
from .dispatcher import DispatchReport, LedgerSync
from .events import feedback_event, profile_update_event

__all__ = [
    "BackfillJob",
    "DispatchReport",
    "LedgerSync",
    "feedback_event",
    "profile_update_event",
]

"""Reconciliation of registrations whose ledger id was never recorded."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.domain.ports.ledger import LedgerError, ReceiptStatus

if TYPE_CHECKING:
    from soulsmith.domain.ports.ledger import LedgerGateway
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory

log = getLogger(__name__)


class BackfillJob:
    """Re-derive missing ledger ids from registration receipts.

    Each soul is handled on its own; one failure is logged and the sweep continues.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        gateway: LedgerGateway | None,
        *,
        batch_size: int = 50,
    ) -> None:
        self.uow_factory = uow_factory
        self.gateway = gateway
        self.batch_size = batch_size

    def run_once(self) -> int:
        if self.gateway is None:
            return 0

        with self.uow_factory() as uow:
            candidates = [
                (soul.id, soul.handle, soul.registration_tx)
                for soul in uow.repositories.souls.list_missing_agent_id(self.batch_size)
            ]
        if not candidates:
            return 0

        patched = 0
        for soul_id, handle, tx_ref in candidates:
            if not tx_ref:
                continue
            try:
                receipt = self.gateway.get_receipt(tx_ref)
            except LedgerError as exc:
                log.warning("Backfill: receipt lookup for @%s (%s) failed: %s", handle, tx_ref, exc)
                continue

            if receipt.status is ReceiptStatus.PENDING:
                log.debug("Backfill: @%s registration %s still pending", handle, tx_ref)
                continue
            if receipt.status is ReceiptStatus.REVERTED or receipt.agent_id is None:
                log.warning(
                    "Backfill: no ledger id in receipt %s for @%s (status=%s)",
                    tx_ref,
                    handle,
                    receipt.status.value,
                )
                continue

            try:
                with self.uow_factory() as uow:
                    soul = uow.repositories.souls.get(soul_id)
                    if soul is None or soul.ledger_agent_id is not None:
                        continue
                    soul.ledger_agent_id = receipt.agent_id
                    soul.touch()
                    uow.commit()
            except Exception:
                log.exception("Backfill: failed to store ledger id for @%s", handle)
                continue
            patched += 1
            log.info("Backfill: @%s -> ledger id %d", handle, receipt.agent_id)

        log.info("Backfill complete: %d/%d souls patched", patched, len(candidates))
        return patched

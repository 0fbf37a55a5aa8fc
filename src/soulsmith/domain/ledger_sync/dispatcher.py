"""Outbox dispatcher mirroring accepted feedback and profile updates to the ledger."""

from __future__ import annotations

import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.domain.model import Category, LedgerEventKind, LedgerEventStatus
from soulsmith.domain.ports.ledger import LedgerError, ReceiptStatus

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from soulsmith.config import LedgerConfig
    from soulsmith.domain.ports.ledger import LedgerGateway
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory

log = getLogger(__name__)


@dataclass(slots=True)
class DispatchReport:
    done: int = 0
    retried: int = 0
    dead: int = 0
    skipped: int = 0

    @property
    def processed(self) -> int:
        return self.done + self.retried + self.dead + self.skipped


@dataclass(frozen=True, slots=True)
class _FeedbackJob:
    event_id: UUID
    fragment_id: UUID
    agent_id: int
    signer: str
    category: Category
    confidence: float
    content_hash: str
    top_up_tx: str | None = None


@dataclass(frozen=True, slots=True)
class _ProfileJob:
    event_id: UUID
    condensation_id: UUID
    agent_id: int
    manifest: dict[str, object]


class LedgerSync:
    """Drains pending ledger events; business state never depends on the outcome.

    A failing event is retried on later passes and marked dead after
    ``max_attempts``. Events whose soul has no ledger id are skipped.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        gateway: LedgerGateway | None,
        config: LedgerConfig | None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.uow_factory = uow_factory
        self.gateway = gateway
        self.config = config
        self._sleep = sleep
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self.gateway is not None and self.config is not None

    def dispatch_pending(self, limit: int = 50) -> DispatchReport:
        report = DispatchReport()
        if not self.enabled:
            return report

        with self.uow_factory() as uow:
            event_ids = [event.id for event in uow.repositories.ledger_events.list_pending(limit)]

        for event_id in event_ids:
            status = self._dispatch_one(event_id)
            if status is LedgerEventStatus.DONE:
                report.done += 1
            elif status is LedgerEventStatus.DEAD:
                report.dead += 1
            elif status is LedgerEventStatus.SKIPPED:
                report.skipped += 1
            else:
                report.retried += 1
        if report.processed:
            log.info(
                "Ledger dispatch: done=%d retried=%d dead=%d skipped=%d",
                report.done,
                report.retried,
                report.dead,
                report.skipped,
            )
        return report

    def _dispatch_one(self, event_id: UUID) -> LedgerEventStatus:
        job = self._prepare(event_id)
        if isinstance(job, LedgerEventStatus):
            return job

        try:
            if isinstance(job, _FeedbackJob):
                tx_ref = self._send_feedback(job)
            else:
                tx_ref = self._send_profile(job)
        except LedgerError as exc:
            return self._record_failure(event_id, str(exc))

        with self.uow_factory() as uow:
            repos = uow.repositories
            event = repos.ledger_events.get(event_id)
            if event is None:
                return LedgerEventStatus.DONE
            if isinstance(job, _FeedbackJob):
                fragment = repos.fragments.get(job.fragment_id)
                if fragment is not None:
                    fragment.ledger_tx = tx_ref
            else:
                condensation = repos.condensations.get(job.condensation_id)
                if condensation is not None:
                    condensation.ledger_tx = tx_ref
            event.mark_done()
            uow.commit()
        log.info("Ledger %s event %s confirmed as %s", event.kind.value, event_id, tx_ref)
        return LedgerEventStatus.DONE

    def _prepare(self, event_id: UUID) -> _FeedbackJob | _ProfileJob | LedgerEventStatus:
        with self.uow_factory() as uow:
            repos = uow.repositories
            event = repos.ledger_events.get(event_id)
            if event is None or event.status is not LedgerEventStatus.PENDING:
                return LedgerEventStatus.SKIPPED
            soul = repos.souls.get(event.soul_id)

            reason: str | None = None
            job: _FeedbackJob | _ProfileJob | None = None
            if soul is None or soul.ledger_agent_id is None:
                reason = "soul is not registered on the ledger"
            elif event.kind is LedgerEventKind.FEEDBACK:
                fragment = repos.fragments.get(event.fragment_id) if event.fragment_id else None
                submitter = (
                    repos.submitters.get(event.submitter_id) if event.submitter_id else None
                )
                if fragment is None or submitter is None:
                    reason = "fragment or submitter no longer exists"
                elif not submitter.wallet_address:
                    reason = "submitter has no signing wallet"
                else:
                    job = _FeedbackJob(
                        event_id=event.id,
                        fragment_id=fragment.id,
                        agent_id=soul.ledger_agent_id,
                        signer=submitter.wallet_address,
                        category=fragment.category,
                        confidence=fragment.confidence or 0.0,
                        content_hash=fragment.content_hash,
                        top_up_tx=event.top_up_tx,
                    )
            else:
                condensation = (
                    repos.condensations.get(event.condensation_id)
                    if event.condensation_id
                    else None
                )
                if condensation is None:
                    reason = "condensation no longer exists"
                else:
                    job = _ProfileJob(
                        event_id=event.id,
                        condensation_id=condensation.id,
                        agent_id=soul.ledger_agent_id,
                        manifest={
                            "handle": soul.handle,
                            "stage": soul.stage.value,
                            "version": condensation.version_to,
                            "seed_summary": soul.seed_summary,
                            "profile_sha256": event.payload.get("profile_sha256"),
                            "summary_diff": condensation.summary_diff,
                        },
                    )

            if job is None:
                event.mark_skipped(reason or "nothing to send")
                uow.commit()
                log.debug("Skipped ledger event %s: %s", event_id, reason)
                return LedgerEventStatus.SKIPPED
        return job

    def _record_failure(self, event_id: UUID, error: str) -> LedgerEventStatus:
        assert self.config is not None
        with self.uow_factory() as uow:
            event = uow.repositories.ledger_events.get(event_id)
            if event is None:
                return LedgerEventStatus.SKIPPED
            event.record_failure(error, max_attempts=self.config.max_attempts)
            status = event.status
            attempts = event.attempts
            uow.commit()
        if status is LedgerEventStatus.DEAD:
            log.error("Ledger event %s dead after %d attempts: %s", event_id, attempts, error)
        else:
            log.warning("Ledger event %s failed (attempt %d): %s", event_id, attempts, error)
        return status

    def _send_feedback(self, job: _FeedbackJob) -> str:
        assert self.gateway is not None
        assert self.config is not None
        self._ensure_gas(job)
        return self.gateway.submit_feedback(
            signer=job.signer,
            agent_id=job.agent_id,
            score=round(job.confidence * 100),
            category=job.category,
            content_hash=job.content_hash,
            feedback_uri=f"{self.config.public_base_url}/api/fragments/{job.fragment_id}",
        )

    def _send_profile(self, job: _ProfileJob) -> str:
        assert self.gateway is not None
        return self.gateway.submit_profile_update(job.agent_id, job.manifest)

    def _ensure_gas(self, job: _FeedbackJob) -> None:
        """Top up the signer from custody when below the floor and wait for confirmation.

        A top-up still unconfirmed from an earlier attempt is awaited first; a new
        transfer is only sent once that one has settled.
        """

        assert self.gateway is not None
        assert self.config is not None
        if job.top_up_tx is not None:
            status = self._await_receipt(job.top_up_tx)
            if status is ReceiptStatus.PENDING:
                raise LedgerError(
                    f"Top-up {job.top_up_tx} unconfirmed after {self.config.confirmation_timeout}s"
                )
            if status is ReceiptStatus.REVERTED:
                log.warning("Top-up %s for %s reverted", job.top_up_tx, job.signer)
            self._remember_top_up(job.event_id, None)

        balance = self.gateway.get_balance(job.signer)
        if balance >= self.config.gas_floor_wei:
            return
        log.info(
            "Topping up %s (balance %d wei below floor %d)",
            job.signer,
            balance,
            self.config.gas_floor_wei,
        )
        tx_ref = self.gateway.transfer(job.signer, self.config.top_up_wei)
        self._remember_top_up(job.event_id, tx_ref)
        self.wait_for_receipt(tx_ref)

    def _remember_top_up(self, event_id: UUID, tx_ref: str | None) -> None:
        with self.uow_factory() as uow:
            event = uow.repositories.ledger_events.get(event_id)
            if event is not None:
                event.top_up_tx = tx_ref
                uow.commit()

    def _await_receipt(self, tx_ref: str) -> ReceiptStatus:
        """Poll until ``tx_ref`` settles or the confirmation timeout passes."""

        assert self.gateway is not None
        assert self.config is not None
        deadline = self._clock() + self.config.confirmation_timeout
        while True:
            status = self.gateway.get_receipt(tx_ref).status
            if status is not ReceiptStatus.PENDING:
                return status
            if self._clock() + self.config.poll_interval > deadline:
                return ReceiptStatus.PENDING
            self._sleep(self.config.poll_interval)

    def wait_for_receipt(self, tx_ref: str) -> None:
        assert self.config is not None
        status = self._await_receipt(tx_ref)
        if status is ReceiptStatus.REVERTED:
            raise LedgerError(f"Transaction {tx_ref} reverted")
        if status is ReceiptStatus.PENDING:
            raise LedgerError(
                f"Transaction {tx_ref} unconfirmed after {self.config.confirmation_timeout}s"
            )

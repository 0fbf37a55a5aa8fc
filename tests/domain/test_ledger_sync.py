from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select

from soulsmith.adapters.sqlalchemy.mappings import ledger_event_table
from soulsmith.config import LedgerConfig, PipelineConfig, ResilienceConfig
from soulsmith.domain.condensation import CondensationEngine
from soulsmith.domain.curation import CurationEngine
from soulsmith.domain.ledger_sync import BackfillJob, LedgerSync
from soulsmith.domain.locking import SoulLocks
from soulsmith.domain.model import Category, LedgerEventStatus
from soulsmith.domain.ports.ledger import LedgerError, LedgerReceipt, ReceiptStatus
from soulsmith.domain.souls import SoulService
from tests.helpers.builders import (
    OWNER,
    add_pending_fragment,
    fragment_text,
    make_soul,
    make_submitter,
)
from tests.helpers.fakes import FakeLedgerGateway

if TYPE_CHECKING:
    from uuid import UUID

    from soulsmith.domain.model import Soul, Submitter
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory

WALLET = "0xSigner00000000000000000000000000000000003"
LEDGER_CONFIG = LedgerConfig(
    api_token="token",
    public_base_url="https://souls.example",
    resilience=ResilienceConfig(name="ledger", cache=None),
    max_attempts=3,
    confirmation_timeout=10.0,
    poll_interval=2.0,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _registered_soul(uow_factory: UnitOfWorkFactory, agent_id: int | None = 42) -> Soul:
    service = SoulService(uow_factory)
    service.register_soul("ada", owner_address=OWNER)
    return service.confirm_registration(
        "ada", owner_address=OWNER, registration_tx="0xreg", ledger_agent_id=agent_id
    )


def _accept(
    uow_factory: UnitOfWorkFactory,
    soul: Soul,
    submitter: Submitter,
    *,
    count: int = 1,
    threshold: int = 10,
) -> list[UUID]:
    config = PipelineConfig(condensation_threshold=threshold)
    condenser = CondensationEngine(
        uow_factory, None, SoulLocks(), config=config, ledger_enabled=True
    )
    curator = CurationEngine(uow_factory, None, condenser, config=config, ledger_enabled=True)
    fragment_ids: list[UUID] = []
    for index in range(count):
        fragment = add_pending_fragment(
            uow_factory, soul, submitter, fragment_text(index), Category.STANCE
        )
        curator.review(fragment.id)
        fragment_ids.append(fragment.id)
    return fragment_ids


def _sync(
    uow_factory: UnitOfWorkFactory,
    gateway: FakeLedgerGateway,
    clock: FakeClock | None = None,
    config: LedgerConfig = LEDGER_CONFIG,
) -> LedgerSync:
    clock = clock or FakeClock()
    return LedgerSync(uow_factory, gateway, config, sleep=clock.sleep, clock=clock)


def _event_statuses(uow_factory: UnitOfWorkFactory) -> list[LedgerEventStatus]:
    with uow_factory() as uow:
        session = uow.session  # type: ignore[attr-defined]
        rows = session.execute(select(ledger_event_table.c.status)).scalars().all()
    return [LedgerEventStatus(value) for value in rows]


def test_feedback_event_is_delivered(uow_factory: UnitOfWorkFactory) -> None:
    soul = _registered_soul(uow_factory)
    submitter = make_submitter(uow_factory, wallet_address=WALLET)
    [fragment_id] = _accept(uow_factory, soul, submitter)
    gateway = FakeLedgerGateway()

    report = _sync(uow_factory, gateway).dispatch_pending()

    assert report.done == 1
    assert gateway.feedback == [
        {
            "signer": WALLET,
            "agent_id": 42,
            "score": 70,
            "category": Category.STANCE,
            "content_hash": gateway.feedback[0]["content_hash"],
            "feedback_uri": f"https://souls.example/api/fragments/{fragment_id}",
        }
    ]
    assert gateway.transfers == []
    with uow_factory() as uow:
        fragment = uow.repositories.fragments.get(fragment_id)
        assert fragment is not None
        assert fragment.ledger_tx == "0xtx0001"
        assert gateway.feedback[0]["content_hash"] == fragment.content_hash
        assert uow.repositories.ledger_events.list_pending(10) == []


def test_low_balance_is_topped_up_before_feedback(uow_factory: UnitOfWorkFactory) -> None:
    soul = _registered_soul(uow_factory)
    submitter = make_submitter(uow_factory, wallet_address=WALLET)
    _accept(uow_factory, soul, submitter)
    gateway = FakeLedgerGateway(balances={WALLET: 10})
    clock = FakeClock()
    gateway.receipts["0xtx0001"] = LedgerReceipt("0xtx0001", ReceiptStatus.PENDING)

    def confirm_after_first_poll(seconds: float) -> None:
        clock.sleeps.append(seconds)
        gateway.receipts["0xtx0001"] = LedgerReceipt("0xtx0001", ReceiptStatus.SUCCESS)

    sync = LedgerSync(
        uow_factory, gateway, LEDGER_CONFIG, sleep=confirm_after_first_poll, clock=clock
    )
    report = sync.dispatch_pending()

    assert report.done == 1
    assert gateway.transfers == [(WALLET, LEDGER_CONFIG.top_up_wei)]
    assert gateway.receipt_lookups == ["0xtx0001", "0xtx0001"]
    assert clock.sleeps == [2.0]
    assert len(gateway.feedback) == 1


def test_unconfirmed_top_up_is_retried_later(uow_factory: UnitOfWorkFactory) -> None:
    soul = _registered_soul(uow_factory)
    submitter = make_submitter(uow_factory, wallet_address=WALLET)
    _accept(uow_factory, soul, submitter)
    gateway = FakeLedgerGateway(balances={WALLET: 0})
    gateway.receipts["0xtx0001"] = LedgerReceipt("0xtx0001", ReceiptStatus.PENDING)
    clock = FakeClock()

    report = _sync(uow_factory, gateway, clock).dispatch_pending()

    assert report.retried == 1
    assert gateway.feedback == []
    assert clock.now <= LEDGER_CONFIG.confirmation_timeout
    with uow_factory() as uow:
        [event] = uow.repositories.ledger_events.list_pending(10)
        assert event.attempts == 1
        assert "unconfirmed" in (event.last_error or "")


def test_pending_top_up_is_awaited_instead_of_resent(uow_factory: UnitOfWorkFactory) -> None:
    soul = _registered_soul(uow_factory)
    submitter = make_submitter(uow_factory, wallet_address=WALLET)
    _accept(uow_factory, soul, submitter)
    gateway = FakeLedgerGateway(balances={WALLET: 0})
    gateway.receipts["0xtx0001"] = LedgerReceipt("0xtx0001", ReceiptStatus.PENDING)
    sync = _sync(uow_factory, gateway)

    first = sync.dispatch_pending()
    # an unconfirmed transfer is not yet visible in the balance
    gateway.balances[WALLET] = 0
    second = sync.dispatch_pending()

    assert first.retried == second.retried == 1
    assert gateway.transfers == [(WALLET, LEDGER_CONFIG.top_up_wei)]
    with uow_factory() as uow:
        [event] = uow.repositories.ledger_events.list_pending(10)
        assert event.top_up_tx == "0xtx0001"

    gateway.receipts["0xtx0001"] = LedgerReceipt("0xtx0001", ReceiptStatus.SUCCESS)
    gateway.balances[WALLET] = LEDGER_CONFIG.top_up_wei
    third = sync.dispatch_pending()

    assert third.done == 1
    assert gateway.transfers == [(WALLET, LEDGER_CONFIG.top_up_wei)]
    assert len(gateway.feedback) == 1


def test_repeated_failures_dead_letter_the_event(uow_factory: UnitOfWorkFactory) -> None:
    soul = _registered_soul(uow_factory)
    submitter = make_submitter(uow_factory, wallet_address=WALLET)
    _accept(uow_factory, soul, submitter)
    gateway = FakeLedgerGateway(fail_with=LedgerError("gateway down"))
    sync = _sync(uow_factory, gateway)

    reports = [sync.dispatch_pending() for _ in range(3)]

    assert [r.retried for r in reports] == [1, 1, 0]
    assert reports[-1].dead == 1
    assert _event_statuses(uow_factory) == [LedgerEventStatus.DEAD]
    assert sync.dispatch_pending().processed == 0


def test_events_without_ledger_identity_are_skipped(uow_factory: UnitOfWorkFactory) -> None:
    soul = _registered_soul(uow_factory, agent_id=None)
    submitter = make_submitter(uow_factory, wallet_address=WALLET)
    _accept(uow_factory, soul, submitter)
    gateway = FakeLedgerGateway()

    report = _sync(uow_factory, gateway).dispatch_pending()

    assert report.skipped == 1
    assert gateway.feedback == []
    assert _event_statuses(uow_factory) == [LedgerEventStatus.SKIPPED]


def test_submitter_without_wallet_is_skipped(uow_factory: UnitOfWorkFactory) -> None:
    soul = _registered_soul(uow_factory)
    submitter = make_submitter(uow_factory)
    _accept(uow_factory, soul, submitter)

    report = _sync(uow_factory, FakeLedgerGateway()).dispatch_pending()

    assert report.skipped == 1


def test_profile_update_carries_manifest(uow_factory: UnitOfWorkFactory) -> None:
    soul = _registered_soul(uow_factory)
    submitter = make_submitter(uow_factory, wallet_address=WALLET)
    _accept(uow_factory, soul, submitter, count=2, threshold=2)
    gateway = FakeLedgerGateway()

    report = _sync(uow_factory, gateway).dispatch_pending()

    assert report.done == 3
    [(agent_id, manifest)] = gateway.profile_updates
    assert agent_id == 42
    assert manifest["handle"] == "ada"
    assert manifest["version"] == 2
    assert isinstance(manifest["profile_sha256"], str)
    with uow_factory() as uow:
        [condensation] = uow.repositories.condensations.list_for_soul(soul.id)
        assert condensation.ledger_tx is not None


def test_disabled_sync_does_nothing(uow_factory: UnitOfWorkFactory) -> None:
    sync = LedgerSync(uow_factory, None, None)

    assert not sync.enabled
    assert sync.dispatch_pending().processed == 0


def test_reverted_confirmation_raises(uow_factory: UnitOfWorkFactory) -> None:
    gateway = FakeLedgerGateway()
    gateway.receipts["0xbad"] = LedgerReceipt("0xbad", ReceiptStatus.REVERTED)
    sync = _sync(uow_factory, gateway, config=replace(LEDGER_CONFIG, confirmation_timeout=1.0))

    with pytest.raises(LedgerError):
        sync.wait_for_receipt("0xbad")


def test_backfill_patches_confirmed_registrations(uow_factory: UnitOfWorkFactory) -> None:
    service = SoulService(uow_factory)
    for handle, tx_ref in [("done", "0x1"), ("slow", "0x2"), ("failed", "0x3"), ("lost", "0x4")]:
        service.register_soul(handle, owner_address=OWNER)
        service.confirm_registration(handle, owner_address=OWNER, registration_tx=tx_ref)
    make_soul(uow_factory, "offchain")
    gateway = FakeLedgerGateway(
        receipts={
            "0x1": LedgerReceipt("0x1", ReceiptStatus.SUCCESS, agent_id=7),
            "0x2": LedgerReceipt("0x2", ReceiptStatus.PENDING),
            "0x3": LedgerReceipt("0x3", ReceiptStatus.REVERTED),
        }
    )

    patched = BackfillJob(uow_factory, gateway).run_once()

    assert patched == 1
    assert service.get_soul("done").ledger_agent_id == 7
    assert service.get_soul("slow").ledger_agent_id is None
    assert sorted(gateway.receipt_lookups) == ["0x1", "0x2", "0x3", "0x4"]
    assert BackfillJob(uow_factory, None).run_once() == 0

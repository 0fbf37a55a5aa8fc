"""Soul registration lifecycle, read models and the pending-registration sweep."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.config.pipeline import PipelineConfig
from soulsmith.domain.errors import ForbiddenError, NotFoundError, ValidationError
from soulsmith.domain.handles import normalize_handle
from soulsmith.domain.lifecycle import activate
from soulsmith.domain.model import Category, Soul, Stage, empty_scores, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from soulsmith.domain.model import Condensation
    from soulsmith.domain.ports.persistence import SoulRepository
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory

log = getLogger(__name__)


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"


@dataclass(frozen=True, slots=True)
class Task:
    handle: str
    category: Category
    score: int
    priority: TaskPriority
    followers: int

    @property
    def message(self) -> str:
        return (
            f"@{self.handle} needs more fragments for {self.category.value} "
            f"(current score: {self.score})"
        )


def _same_owner(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


class SoulService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        config: PipelineConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.uow_factory = uow_factory
        self.config = config or PipelineConfig()
        self._clock = clock

    def register_soul(
        self,
        handle: str,
        *,
        owner_address: str,
        display_name: str = "",
        seed_summary: str = "",
        profile_document: str = "",
        follower_count: int = 0,
        await_confirmation: bool = True,
    ) -> Soul:
        """Reserve ``handle`` for ``owner_address``.

        The reservation stays pending until :meth:`confirm_registration`. A pending
        reservation by the same owner, or one older than ``pending_timeout``, is
        replaced; anyone else's live reservation blocks the handle.
        """

        normalized = normalize_handle(handle)
        owner = owner_address.strip()
        if not owner:
            raise ValidationError("owner_address is required")
        if follower_count < 0:
            raise ValidationError("follower_count must be non-negative")

        with self.uow_factory() as uow:
            souls = uow.repositories.souls
            existing = souls.get_by_handle(normalized)
            if existing is not None:
                self._release_reservation(souls, existing, owner)

            if souls.count_confirmed_for_owner(owner) >= self.config.max_souls_per_owner:
                raise ForbiddenError(
                    f"{owner} already owns {self.config.max_souls_per_owner} souls"
                )

            now = self._clock()
            soul = Soul(
                handle=normalized,
                display_name=display_name or normalized,
                owner_address=owner,
                seed_summary=seed_summary,
                profile_document=profile_document,
                follower_count=follower_count,
                category_scores=empty_scores(),
                created_at=now,
                updated_at=now,
            )
            if not await_confirmation:
                activate(soul)
            souls.add(soul)
            uow.commit()
        log.info("Registered @%s for %s (stage=%s)", soul.handle, owner, soul.stage.value)
        return soul

    def _release_reservation(self, souls: SoulRepository, existing: Soul, owner: str) -> None:
        if existing.is_confirmed:
            raise ForbiddenError(f"@{existing.handle} is already registered")
        expired = existing.created_at < self._clock() - self.config.pending_timeout
        if not expired and not _same_owner(existing.owner_address, owner):
            raise ForbiddenError(f"@{existing.handle} is reserved by another owner")
        log.info(
            "Replacing %s pending reservation for @%s",
            "expired" if expired else "own",
            existing.handle,
        )
        souls.purge(existing)

    def confirm_registration(
        self,
        handle: str,
        *,
        owner_address: str,
        registration_tx: str,
        ledger_agent_id: int | None = None,
    ) -> Soul:
        """Mark a reservation as confirmed on the ledger.

        ``ledger_agent_id`` may be unknown at this point; the backfill job derives it
        from ``registration_tx`` later.
        """

        normalized = normalize_handle(handle)
        if not registration_tx.strip():
            raise ValidationError("registration_tx is required")
        with self.uow_factory() as uow:
            soul = uow.repositories.souls.get_by_handle(normalized)
            if soul is None:
                raise NotFoundError(f"Soul @{normalized} not found")
            if not _same_owner(soul.owner_address, owner_address):
                raise ForbiddenError(f"@{normalized} is reserved by another owner")
            if soul.is_confirmed:
                raise ForbiddenError(f"@{normalized} is already confirmed")
            soul.registration_tx = registration_tx.strip()
            soul.ledger_agent_id = ledger_agent_id
            activate(soul)
            soul.touch()
            uow.commit()
        log.info(
            "Confirmed @%s (tx=%s, ledger id=%s)", normalized, registration_tx, ledger_agent_id
        )
        return soul

    def cancel_registration(self, handle: str, *, owner_address: str) -> None:
        normalized = normalize_handle(handle)
        with self.uow_factory() as uow:
            souls = uow.repositories.souls
            soul = souls.get_by_handle(normalized)
            if soul is None or soul.is_confirmed:
                raise NotFoundError(f"No pending registration for @{normalized}")
            if not _same_owner(soul.owner_address, owner_address):
                raise ForbiddenError(f"@{normalized} is reserved by another owner")
            souls.purge(soul)
            uow.commit()
        log.info("Cancelled pending registration for @%s", normalized)

    def set_follower_count(self, handle: str, follower_count: int) -> Soul:
        if follower_count < 0:
            raise ValidationError("follower_count must be non-negative")
        with self.uow_factory() as uow:
            soul = self._require(uow.repositories.souls, handle)
            soul.follower_count = follower_count
            soul.touch()
            uow.commit()
        return soul

    def get_soul(self, handle: str) -> Soul:
        with self.uow_factory() as uow:
            return self._require(uow.repositories.souls, handle)

    def get_history(self, handle: str) -> list[Condensation]:
        with self.uow_factory() as uow:
            soul = self._require(uow.repositories.souls, handle)
            return list(uow.repositories.condensations.list_for_soul(soul.id))

    def get_task_board(self) -> list[Task]:
        """Categories below the coverage floor, most-followed souls first."""

        floor = self.config.task_score_floor
        tasks: list[Task] = []
        with self.uow_factory() as uow:
            for soul in uow.repositories.souls.list_confirmed_by_followers():
                for category in Category:
                    score = soul.score_for(category).score
                    if score >= floor:
                        continue
                    priority = (
                        TaskPriority.HIGH
                        if score == 0 or score < self.config.high_priority_below
                        else TaskPriority.MEDIUM
                    )
                    tasks.append(
                        Task(
                            handle=soul.handle,
                            category=category,
                            score=score,
                            priority=priority,
                            followers=soul.follower_count,
                        )
                    )
        return tasks

    @staticmethod
    def _require(souls: SoulRepository, handle: str) -> Soul:
        normalized = normalize_handle(handle)
        soul = souls.get_by_handle(normalized)
        if soul is None:
            raise NotFoundError(f"Soul @{normalized} not found")
        return soul


class PendingSoulCleanup:
    """Hard-delete reservations that were never confirmed within the timeout."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        config: PipelineConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.uow_factory = uow_factory
        self.config = config or PipelineConfig()
        self._clock = clock

    def run_once(self) -> int:
        cutoff = self._clock() - self.config.pending_timeout
        with self.uow_factory() as uow:
            handles = [
                (soul.id, soul.handle)
                for soul in uow.repositories.souls.list_expired_pending(cutoff)
            ]

        purged = 0
        for soul_id, handle in handles:
            try:
                with self.uow_factory() as uow:
                    soul = uow.repositories.souls.get(soul_id)
                    if soul is None or soul.stage is not Stage.PENDING:
                        continue
                    uow.repositories.souls.purge(soul)
                    uow.commit()
            except Exception:
                log.exception("Cleanup: failed to purge pending @%s", handle)
                continue
            purged += 1
            log.info("Cleanup: purged expired pending reservation @%s", handle)
        return purged

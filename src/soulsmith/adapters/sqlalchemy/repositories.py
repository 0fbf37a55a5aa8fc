"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update

from soulsmith.adapters.sqlalchemy.mappings import (
    condensation_table,
    fragment_table,
    ledger_event_table,
    soul_table,
    submitter_table,
)
from soulsmith.domain.model import (
    Category,
    Condensation,
    Fragment,
    FragmentStatus,
    LedgerEvent,
    LedgerEventStatus,
    Soul,
    Stage,
    Submitter,
)

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence
    from datetime import datetime

    from sqlalchemy.orm import Session


class SqlAlchemyRepository[TEntity]:
    """Shared add/get helpers for a single mapped class."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get(self, entity_id: uuid.UUID) -> TEntity | None:
        return self.session.get(self._entity_cls, entity_id)


class SqlAlchemySoulRepository(SqlAlchemyRepository[Soul]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Soul)

    def get_by_handle(self, handle: str) -> Soul | None:
        stmt = select(Soul).where(soul_table.c.handle == handle)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_for_update(self, soul_id: uuid.UUID) -> Soul | None:
        stmt = (
            select(Soul)
            .where(soul_table.c.id == soul_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def increment_total_fragments(self, soul_id: uuid.UUID) -> None:
        self.session.execute(
            update(soul_table)
            .where(soul_table.c.id == soul_id)
            .values(total_fragments=soul_table.c.total_fragments + 1)
        )

    def count_confirmed_for_owner(self, owner_address: str) -> int:
        stmt = (
            select(func.count())
            .select_from(soul_table)
            .where(func.lower(soul_table.c.owner_address) == owner_address.lower())
            .where(soul_table.c.stage != Stage.PENDING)
        )
        return int(self.session.execute(stmt).scalar_one())

    def list_confirmed_by_followers(self) -> Sequence[Soul]:
        stmt = (
            select(Soul)
            .where(soul_table.c.stage != Stage.PENDING)
            .order_by(soul_table.c.follower_count.desc(), soul_table.c.handle)
        )
        return self.session.execute(stmt).scalars().all()

    def list_expired_pending(self, cutoff: datetime) -> Sequence[Soul]:
        stmt = (
            select(Soul)
            .where(soul_table.c.stage == Stage.PENDING)
            .where(soul_table.c.created_at < cutoff)
        )
        return self.session.execute(stmt).scalars().all()

    def list_missing_agent_id(self, limit: int) -> Sequence[Soul]:
        stmt = (
            select(Soul)
            .where(soul_table.c.registration_tx.is_not(None))
            .where(soul_table.c.registration_tx != "")
            .where(soul_table.c.ledger_agent_id.is_(None))
            .order_by(soul_table.c.created_at)
            .limit(limit)
        )
        return self.session.execute(stmt).scalars().all()

    def purge(self, soul: Soul) -> None:
        soul_id = soul.id
        self.session.execute(
            delete(ledger_event_table).where(ledger_event_table.c.soul_id == soul_id)
        )
        self.session.execute(delete(fragment_table).where(fragment_table.c.soul_id == soul_id))
        self.session.execute(
            delete(condensation_table).where(condensation_table.c.soul_id == soul_id)
        )
        # immediate DELETE so a replacement row with the same handle can be inserted
        self.session.execute(delete(soul_table).where(soul_table.c.id == soul_id))
        if soul in self.session:
            self.session.expunge(soul)


class SqlAlchemyFragmentRepository(SqlAlchemyRepository[Fragment]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Fragment)

    def recent_accepted(
        self,
        soul_id: uuid.UUID,
        category: Category,
        *,
        limit: int,
        exclude_id: uuid.UUID | None = None,
    ) -> Sequence[Fragment]:
        stmt = (
            select(Fragment)
            .where(fragment_table.c.soul_id == soul_id)
            .where(fragment_table.c.category == category)
            .where(fragment_table.c.status == FragmentStatus.ACCEPTED)
        )
        if exclude_id is not None:
            stmt = stmt.where(fragment_table.c.id != exclude_id)
        stmt = stmt.order_by(fragment_table.c.created_at.desc()).limit(limit)
        return self.session.execute(stmt).scalars().all()

    def find_accepted_duplicate(
        self, soul_id: uuid.UUID, content_hash: str, *, exclude_id: uuid.UUID
    ) -> Fragment | None:
        stmt = (
            select(Fragment)
            .where(fragment_table.c.soul_id == soul_id)
            .where(fragment_table.c.content_hash == content_hash)
            .where(fragment_table.c.status == FragmentStatus.ACCEPTED)
            .where(fragment_table.c.id != exclude_id)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def count_accepted(self, soul_id: uuid.UUID) -> int:
        self.session.flush()
        stmt = (
            select(func.count())
            .select_from(fragment_table)
            .where(fragment_table.c.soul_id == soul_id)
            .where(fragment_table.c.status == FragmentStatus.ACCEPTED)
        )
        return int(self.session.execute(stmt).scalar_one())

    def count_contributors(self, soul_id: uuid.UUID) -> int:
        self.session.flush()
        stmt = (
            select(func.count(func.distinct(fragment_table.c.submitter_id)))
            .where(fragment_table.c.soul_id == soul_id)
            .where(fragment_table.c.status == FragmentStatus.ACCEPTED)
        )
        return int(self.session.execute(stmt).scalar_one())

    def unmerged_accepted(self, soul_id: uuid.UUID) -> Sequence[Fragment]:
        stmt = (
            select(Fragment)
            .where(fragment_table.c.soul_id == soul_id)
            .where(fragment_table.c.status == FragmentStatus.ACCEPTED)
            .where(fragment_table.c.condensation_id.is_(None))
            .order_by(fragment_table.c.created_at, fragment_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def count_unmerged(self, soul_id: uuid.UUID) -> int:
        self.session.flush()
        stmt = (
            select(func.count())
            .select_from(fragment_table)
            .where(fragment_table.c.soul_id == soul_id)
            .where(fragment_table.c.status == FragmentStatus.ACCEPTED)
            .where(fragment_table.c.condensation_id.is_(None))
        )
        return int(self.session.execute(stmt).scalar_one())

    def link_to_condensation(
        self, fragment_ids: Sequence[uuid.UUID], condensation_id: uuid.UUID
    ) -> int:
        if not fragment_ids:
            return 0
        self.session.flush()
        result = self.session.execute(
            update(Fragment)
            .where(fragment_table.c.id.in_(list(fragment_ids)))
            .where(fragment_table.c.status == FragmentStatus.ACCEPTED)
            .where(fragment_table.c.condensation_id.is_(None))
            .values(condensation_id=condensation_id)
            .execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount)  # type: ignore[attr-defined]

    def list_for_soul(
        self,
        soul_id: uuid.UUID,
        *,
        status: FragmentStatus | None = None,
        category: Category | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[Fragment], int]:
        conditions = [fragment_table.c.soul_id == soul_id]
        if status is not None:
            conditions.append(fragment_table.c.status == status)
        if category is not None:
            conditions.append(fragment_table.c.category == category)

        total = self.session.execute(
            select(func.count()).select_from(fragment_table).where(*conditions)
        ).scalar_one()
        stmt = (
            select(Fragment)
            .where(*conditions)
            .order_by(fragment_table.c.created_at.desc(), fragment_table.c.id)
            .offset(offset)
            .limit(limit)
        )
        return self.session.execute(stmt).scalars().all(), int(total)


class SqlAlchemySubmitterRepository(SqlAlchemyRepository[Submitter]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Submitter)

    def get_by_name(self, name: str) -> Submitter | None:
        stmt = select(Submitter).where(func.lower(submitter_table.c.name) == name.lower())
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_api_key_hash(self, api_key_hash: str) -> Submitter | None:
        stmt = select(Submitter).where(submitter_table.c.api_key_hash == api_key_hash)
        return self.session.execute(stmt).scalar_one_or_none()

    def increment_submitted(self, submitter_id: uuid.UUID) -> None:
        self.session.execute(
            update(submitter_table)
            .where(submitter_table.c.id == submitter_id)
            .values(total_submitted=submitter_table.c.total_submitted + 1)
        )

    def increment_accepted(self, submitter_id: uuid.UUID) -> None:
        self.session.execute(
            update(submitter_table)
            .where(submitter_table.c.id == submitter_id)
            .values(total_accepted=submitter_table.c.total_accepted + 1)
        )


class SqlAlchemyCondensationRepository(SqlAlchemyRepository[Condensation]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Condensation)

    def list_for_soul(self, soul_id: uuid.UUID) -> Sequence[Condensation]:
        stmt = (
            select(Condensation)
            .where(condensation_table.c.soul_id == soul_id)
            .order_by(condensation_table.c.version_to)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyLedgerEventRepository(SqlAlchemyRepository[LedgerEvent]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, LedgerEvent)

    def list_pending(self, limit: int) -> Sequence[LedgerEvent]:
        stmt = (
            select(LedgerEvent)
            .where(ledger_event_table.c.status == LedgerEventStatus.PENDING)
            .order_by(ledger_event_table.c.created_at)
            .limit(limit)
        )
        return self.session.execute(stmt).scalars().all()


__all__ = [
    "SqlAlchemyCondensationRepository",
    "SqlAlchemyFragmentRepository",
    "SqlAlchemyLedgerEventRepository",
    "SqlAlchemySoulRepository",
    "SqlAlchemySubmitterRepository",
]

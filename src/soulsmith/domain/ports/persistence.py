"""Ports for persisting domain aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from soulsmith.domain.model import (
    Category,
    Condensation,
    Fragment,
    FragmentStatus,
    LedgerEvent,
    Soul,
    Submitter,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def get(self, entity_id: UUID) -> TEntity | None: ...


@runtime_checkable
class SoulRepository(Repository[Soul], Protocol):
    """Persistence contract for souls."""

    def get_by_handle(self, handle: str) -> Soul | None: ...

    def get_for_update(self, soul_id: UUID) -> Soul | None:
        """Load the soul with a row lock held until the transaction ends."""
        ...

    def increment_total_fragments(self, soul_id: UUID) -> None: ...

    def count_confirmed_for_owner(self, owner_address: str) -> int: ...

    def list_confirmed_by_followers(self) -> Sequence[Soul]: ...

    def list_expired_pending(self, cutoff: datetime) -> Sequence[Soul]: ...

    def list_missing_agent_id(self, limit: int) -> Sequence[Soul]: ...

    def purge(self, soul: Soul) -> None:
        """Hard-delete the soul together with its fragments, condensations and events."""
        ...


@runtime_checkable
class FragmentRepository(Repository[Fragment], Protocol):
    """Persistence contract for fragments."""

    def recent_accepted(
        self,
        soul_id: UUID,
        category: Category,
        *,
        limit: int,
        exclude_id: UUID | None = None,
    ) -> Sequence[Fragment]: ...

    def find_accepted_duplicate(
        self, soul_id: UUID, content_hash: str, *, exclude_id: UUID
    ) -> Fragment | None: ...

    def count_accepted(self, soul_id: UUID) -> int: ...

    def count_contributors(self, soul_id: UUID) -> int: ...

    def unmerged_accepted(self, soul_id: UUID) -> Sequence[Fragment]: ...

    def count_unmerged(self, soul_id: UUID) -> int: ...

    def link_to_condensation(self, fragment_ids: Sequence[UUID], condensation_id: UUID) -> int:
        """Link still-unmerged accepted fragments; returns the number of rows updated."""
        ...

    def list_for_soul(
        self,
        soul_id: UUID,
        *,
        status: FragmentStatus | None = None,
        category: Category | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[Fragment], int]: ...


@runtime_checkable
class SubmitterRepository(Repository[Submitter], Protocol):
    """Persistence contract for submitters."""

    def get_by_name(self, name: str) -> Submitter | None: ...

    def get_by_api_key_hash(self, api_key_hash: str) -> Submitter | None: ...

    def increment_submitted(self, submitter_id: UUID) -> None: ...

    def increment_accepted(self, submitter_id: UUID) -> None: ...


@runtime_checkable
class CondensationRepository(Repository[Condensation], Protocol):
    """Persistence contract for condensation batches."""

    def list_for_soul(self, soul_id: UUID) -> Sequence[Condensation]: ...


@runtime_checkable
class LedgerEventRepository(Repository[LedgerEvent], Protocol):
    """Persistence contract for the ledger outbox."""

    def list_pending(self, limit: int) -> Sequence[LedgerEvent]: ...

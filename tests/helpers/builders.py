"""Builders for souls, submitters and fragments persisted through the services."""

from __future__ import annotations

from typing import TYPE_CHECKING

from soulsmith.domain.model import Category, Fragment
from soulsmith.domain.souls import SoulService
from soulsmith.domain.submitters import SubmitterService

if TYPE_CHECKING:
    from soulsmith.domain.model import Soul, Submitter
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory

OWNER = "0xOwner000000000000000000000000000000000001"


def make_soul(
    uow_factory: UnitOfWorkFactory,
    handle: str = "ada",
    *,
    follower_count: int = 0,
    owner_address: str = OWNER,
    confirmed: bool = True,
    seed_summary: str = "Mathematician and writer on the Analytical Engine.",
) -> Soul:
    return SoulService(uow_factory).register_soul(
        handle,
        owner_address=owner_address,
        seed_summary=seed_summary,
        follower_count=follower_count,
        await_confirmation=not confirmed,
    )


def make_submitter(
    uow_factory: UnitOfWorkFactory,
    name: str = "curator",
    *,
    verified: bool = True,
    wallet_address: str | None = None,
) -> Submitter:
    service = SubmitterService(uow_factory)
    submitter, _ = service.register_submitter(name, wallet_address=wallet_address)
    if verified:
        submitter = service.verify_submitter(submitter.id)
    return submitter


def add_pending_fragment(
    uow_factory: UnitOfWorkFactory,
    soul: Soul,
    submitter: Submitter,
    content: str,
    category: Category = Category.KNOWLEDGE,
) -> Fragment:
    fragment = Fragment(
        soul_id=soul.id,
        submitter_id=submitter.id,
        category=category,
        content=content,
    )
    with uow_factory() as uow:
        uow.repositories.fragments.add(fragment)
        uow.repositories.submitters.increment_submitted(submitter.id)
        uow.repositories.souls.increment_total_fragments(soul.id)
        uow.commit()
    return fragment


def fragment_text(index: int) -> str:
    return f"Fragment number {index} describes a distinct verified detail."

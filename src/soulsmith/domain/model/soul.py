"""The profiled subject and its per-category coverage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from soulsmith.domain.model.base import Entity, utcnow
from soulsmith.domain.model.enums import Category, Stage

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class CategoryScore:
    score: int = 0
    summary: str = ""


def empty_scores() -> dict[Category, CategoryScore]:
    return {category: CategoryScore() for category in Category}


@dataclass(eq=False, kw_only=True)
class Soul(Entity):
    """One real-world subject whose profile is built from accepted fragments.

    ``stage`` is owned by :mod:`soulsmith.domain.lifecycle`; nothing else assigns it.
    """

    handle: str
    display_name: str = ""
    owner_address: str | None = None
    seed_summary: str = ""
    profile_document: str = ""
    profile_version: int = 1
    stage: Stage = Stage.PENDING
    category_scores: dict[Category, CategoryScore] = field(default_factory=empty_scores)

    total_fragments: int = 0
    accepted_fragments: int = 0
    contributor_count: int = 0
    follower_count: int = 0

    ledger_agent_id: int | None = None
    registration_tx: str | None = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_confirmed(self) -> bool:
        return self.stage is not Stage.PENDING

    @property
    def condensation_count(self) -> int:
        # every condensation advances the version by exactly one from 1
        return self.profile_version - 1

    def score_for(self, category: Category) -> CategoryScore:
        return self.category_scores.get(category, CategoryScore())

    def touch(self) -> None:
        self.updated_at = utcnow()

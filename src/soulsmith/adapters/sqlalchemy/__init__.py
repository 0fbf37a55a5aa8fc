"""SQLAlchemy adapter package for Soulsmith."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCondensationRepository,
    SqlAlchemyFragmentRepository,
    SqlAlchemyLedgerEventRepository,
    SqlAlchemySoulRepository,
    SqlAlchemySubmitterRepository,
)

__all__ = [
    "SqlAlchemyCondensationRepository",
    "SqlAlchemyFragmentRepository",
    "SqlAlchemyLedgerEventRepository",
    "SqlAlchemySoulRepository",
    "SqlAlchemySubmitterRepository",
    "mapper_registry",
    "start_mappers",
]

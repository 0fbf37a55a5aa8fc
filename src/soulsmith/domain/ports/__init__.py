"""Domain ports (protocols implemented by adapters)."""

from __future__ import annotations

from .classifier import Classifier, ClassifierError
from .ledger import LedgerError, LedgerGateway, LedgerReceipt, ReceiptStatus
from .persistence import (
    CondensationRepository,
    FragmentRepository,
    LedgerEventRepository,
    Repository,
    SoulRepository,
    SubmitterRepository,
)
from .unit_of_work import (
    RepositoryCollection,
    SoulRepositories,
    SoulUnitOfWork,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__ = [
    "Classifier",
    "ClassifierError",
    "CondensationRepository",
    "FragmentRepository",
    "LedgerError",
    "LedgerEventRepository",
    "LedgerGateway",
    "LedgerReceipt",
    "ReceiptStatus",
    "Repository",
    "RepositoryCollection",
    "SoulRepositories",
    "SoulRepository",
    "SoulUnitOfWork",
    "SubmitterRepository",
    "UnitOfWork",
    "UnitOfWorkFactory",
]

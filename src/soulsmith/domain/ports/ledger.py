"""Port for the external append-only ledger."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from soulsmith.domain.model import Category


class LedgerError(RuntimeError):
    """A ledger call failed, timed out or was rejected."""


class ReceiptStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    REVERTED = "reverted"


@dataclass(frozen=True, slots=True)
class LedgerReceipt:
    tx_ref: str
    status: ReceiptStatus
    agent_id: int | None = None

    @property
    def is_final(self) -> bool:
        return self.status is not ReceiptStatus.PENDING


@runtime_checkable
class LedgerGateway(Protocol):
    """Slow, unreliable ledger writes; callers own every fallback."""

    def submit_profile_update(self, agent_id: int, manifest: Mapping[str, object]) -> str: ...

    def submit_feedback(
        self,
        *,
        signer: str,
        agent_id: int,
        score: int,
        category: Category,
        content_hash: str,
        feedback_uri: str,
    ) -> str: ...

    def get_receipt(self, tx_ref: str) -> LedgerReceipt: ...

    def get_balance(self, address: str) -> int: ...

    def transfer(self, to_address: str, amount_wei: int) -> str: ...

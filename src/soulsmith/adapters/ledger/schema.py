"""Pydantic models describing the ledger gateway payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from soulsmith.domain.ports.ledger import ReceiptStatus


class LedgerBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TransactionSubmitted(LedgerBaseModel):
    tx_ref: str = Field(alias="txHash", min_length=1)


class ReceiptPayload(LedgerBaseModel):
    tx_ref: str = Field(alias="txHash")
    status: ReceiptStatus
    agent_id: int | None = Field(default=None, alias="agentId")

    @field_validator("agent_id", mode="before")
    @classmethod
    def _parse_agent_id(cls, value: object) -> object:
        # large uint256 ids arrive as decimal strings
        if isinstance(value, str):
            stripped = value.strip()
            return int(stripped, 0) if stripped else None
        return value


class BalancePayload(LedgerBaseModel):
    address: str
    balance_wei: int = Field(alias="balanceWei")

    @field_validator("balance_wei", mode="before")
    @classmethod
    def _parse_wei(cls, value: object) -> object:
        if isinstance(value, str):
            return int(value.strip(), 0)
        return value


class ErrorPayload(LedgerBaseModel):
    error: str
    code: str | None = None

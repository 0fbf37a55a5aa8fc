"""HTTP client for the ledger custody gateway."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

import httpx
from pydantic import BaseModel, ValidationError

from soulsmith.adapters.http_resilience import ResilienceConfig, ResilientClient
from soulsmith.config import LedgerConfig
from soulsmith.domain.ports.ledger import LedgerError, LedgerReceipt, ReceiptStatus

from .schema import BalancePayload, ErrorPayload, ReceiptPayload, TransactionSubmitted

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from soulsmith.domain.model import Category

log = getLogger(__name__)


def should_cache_receipt(payload: object) -> bool:
    """Only final receipts are immutable; pending ones and balances must be re-read."""

    if not isinstance(payload, dict):
        return False
    status = cast("dict[str, object]", payload).get("status")
    return status in {ReceiptStatus.SUCCESS.value, ReceiptStatus.REVERTED.value}


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpLedgerGateway:
    config: LedgerConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def submit_profile_update(self, agent_id: int, manifest: Mapping[str, object]) -> str:
        payload = self._run("POST", f"v1/souls/{agent_id}/profile", {"manifest": dict(manifest)})
        return self._parse(payload, TransactionSubmitted).tx_ref

    def submit_feedback(
        self,
        *,
        signer: str,
        agent_id: int,
        score: int,
        category: Category,
        content_hash: str,
        feedback_uri: str,
    ) -> str:
        payload = self._run(
            "POST",
            "v1/feedback",
            {
                "signer": signer,
                "agentId": str(agent_id),
                "score": score,
                "tag": category.value,
                "contentHash": content_hash,
                "feedbackUri": feedback_uri,
            },
        )
        return self._parse(payload, TransactionSubmitted).tx_ref

    def get_receipt(self, tx_ref: str) -> LedgerReceipt:
        payload = self._run("GET", f"v1/transactions/{tx_ref}/receipt")
        receipt = self._parse(payload, ReceiptPayload)
        return LedgerReceipt(
            tx_ref=receipt.tx_ref, status=receipt.status, agent_id=receipt.agent_id
        )

    def get_balance(self, address: str) -> int:
        payload = self._run("GET", f"v1/accounts/{address}/balance")
        return self._parse(payload, BalancePayload).balance_wei

    def transfer(self, to_address: str, amount_wei: int) -> str:
        body = {"to": to_address, "amountWei": str(amount_wei)}
        payload = self._run("POST", "v1/transfers", body)
        return self._parse(payload, TransactionSubmitted).tx_ref

    def _run(self, method: str, path: str, body: dict[str, Any] | None = None) -> object:
        return asyncio.run(self._request_async(method, path, body))

    async def _request_async(
        self, method: str, path: str, body: dict[str, Any] | None
    ) -> object:
        headers = {"Authorization": f"Bearer {self.config.api_token}"}
        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.request(method, path, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise LedgerError(f"Ledger {method} {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise LedgerError(
                f"Ledger {method} {path} returned non-JSON body (HTTP {response.status_code})"
            ) from exc

        if response.is_error:
            message = response.reason_phrase
            try:
                message = ErrorPayload.model_validate(payload).error
            except ValidationError:
                log.debug("Unstructured ledger error payload: %r", payload)
            raise LedgerError(f"Ledger {method} {path} HTTP {response.status_code}: {message}")
        return payload

    @staticmethod
    def _parse[TModel: BaseModel](payload: object, schema: type[TModel]) -> TModel:
        try:
            return schema.model_validate(payload)
        except ValidationError as exc:
            raise LedgerError(f"Unexpected ledger payload for {schema.__name__}: {exc}") from exc

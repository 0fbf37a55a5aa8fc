from __future__ import annotations

import json

import httpx
import pytest

from soulsmith.adapters.ledger import (
    HttpLedgerGateway,
    build_http_ledger_gateway,
    load_ledger_config,
    should_cache_receipt,
)
from soulsmith.config import LedgerConfig, MissingConfigurationError, ResilienceConfig
from soulsmith.domain.model import Category
from soulsmith.domain.ports.ledger import LedgerError, ReceiptStatus
from tests.helpers.http import Handler, make_client_factory


def _gateway(handler: Handler) -> HttpLedgerGateway:
    config = LedgerConfig(
        api_token="secret",
        public_base_url="https://souls.example",
        resilience=ResilienceConfig(name="ledger", base_url="https://gw.test/", cache=None),
    )
    return HttpLedgerGateway(config, make_client_factory(handler))


def test_submit_feedback_posts_expected_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"txHash": "0xfeed"})

    tx_ref = _gateway(handler).submit_feedback(
        signer="0xsigner",
        agent_id=12,
        score=85,
        category=Category.STYLE,
        content_hash="abc",
        feedback_uri="https://souls.example/api/fragments/1",
    )

    assert tx_ref == "0xfeed"
    [request] = seen
    assert request.method == "POST"
    assert request.url == httpx.URL("https://gw.test/v1/feedback")
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {
        "signer": "0xsigner",
        "agentId": "12",
        "score": 85,
        "tag": "style",
        "contentHash": "abc",
        "feedbackUri": "https://souls.example/api/fragments/1",
    }


def test_submit_profile_update_and_transfer() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"txHash": f"0x{len(seen)}"})

    gateway = _gateway(handler)

    assert gateway.submit_profile_update(7, {"version": 2}) == "0x1"
    assert gateway.transfer("0xabc", 10**15) == "0x2"
    assert seen[0].url.path == "/v1/souls/7/profile"
    assert json.loads(seen[0].content) == {"manifest": {"version": 2}}
    assert json.loads(seen[1].content) == {"to": "0xabc", "amountWei": "1000000000000000"}


def test_get_receipt_parses_string_agent_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/transactions/0xreg/receipt"
        return httpx.Response(
            200, json={"txHash": "0xreg", "status": "success", "agentId": "340282366920938463"}
        )

    receipt = _gateway(handler).get_receipt("0xreg")

    assert receipt.status is ReceiptStatus.SUCCESS
    assert receipt.agent_id == 340282366920938463
    assert receipt.is_final


def test_get_balance_parses_wei_string() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"address": "0xabc", "balanceWei": "500"})

    assert _gateway(handler).get_balance("0xabc") == 500


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(502, json={"error": "upstream node unavailable", "code": "rpc"}),
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"unexpected": True}),
    ],
)
def test_failures_raise_ledger_error(response: httpx.Response) -> None:
    with pytest.raises(LedgerError):
        _gateway(lambda _request: response).transfer("0xabc", 1)


def test_transport_failure_raises_ledger_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(LedgerError):
        _gateway(handler).get_receipt("0x1")


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"txHash": "0x1", "status": "success"}, True),
        ({"txHash": "0x1", "status": "reverted"}, True),
        ({"txHash": "0x1", "status": "pending"}, False),
        ({"address": "0x1", "balanceWei": "1"}, False),
        (["success"], False),
    ],
)
def test_should_cache_receipt(payload: object, expected: bool) -> None:
    assert should_cache_receipt(payload) is expected


def test_ledger_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LEDGER_GATEWAY_URL", raising=False)
    assert load_ledger_config() is None
    assert build_http_ledger_gateway(None) is None

    monkeypatch.setenv("LEDGER_GATEWAY_URL", "https://gw.example/api")
    monkeypatch.delenv("LEDGER_API_TOKEN", raising=False)
    with pytest.raises(MissingConfigurationError):
        load_ledger_config()

    monkeypatch.setenv("LEDGER_API_TOKEN", "tok")
    monkeypatch.setenv("LEDGER_MAX_ATTEMPTS", "7")
    config = load_ledger_config()

    assert config is not None
    assert config.resilience.base_url == "https://gw.example/api/"
    assert config.max_attempts == 7
    assert config.resilience.cache is not None
    assert config.resilience.cache.should_cache is should_cache_receipt

"""Ledger gateway adapter implementing the ledger port."""

from __future__ import annotations

from soulsmith.config import LedgerConfig, get_ledger_config

from .client import HttpLedgerGateway, should_cache_receipt


def build_http_ledger_gateway(config: LedgerConfig | None) -> HttpLedgerGateway | None:
    """Return a gateway for ``config``; ``None`` disables ledger sync entirely."""

    if config is None:
        return None
    return HttpLedgerGateway(config=config)


def load_ledger_config() -> LedgerConfig | None:
    return get_ledger_config(cache_predicate=should_cache_receipt)


__all__ = [
    "HttpLedgerGateway",
    "build_http_ledger_gateway",
    "load_ledger_config",
    "should_cache_receipt",
]

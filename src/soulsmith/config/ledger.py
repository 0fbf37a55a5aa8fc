"""Ledger gateway configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, optional_env, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, ShouldCacheHook

LEDGER_TIMEOUT_SECONDS = 20.0
GAS_FLOOR_WEI = 500_000_000_000_000  # 0.0005 native units
GAS_TOP_UP_WEI = 1_000_000_000_000_000  # 0.001 native units
CONFIRMATION_TIMEOUT_SECONDS = 60.0
CONFIRMATION_POLL_SECONDS = 2.0
MAX_DISPATCH_ATTEMPTS = 5


@dataclass(frozen=True)
class LedgerConfig:
    """Holds the custody gateway endpoint and the gas/confirmation policy."""

    api_token: str
    public_base_url: str
    resilience: ResilienceConfig
    gas_floor_wei: int = GAS_FLOOR_WEI
    top_up_wei: int = GAS_TOP_UP_WEI
    confirmation_timeout: float = CONFIRMATION_TIMEOUT_SECONDS
    poll_interval: float = CONFIRMATION_POLL_SECONDS
    max_attempts: int = MAX_DISPATCH_ATTEMPTS


def get_ledger_config(
    *,
    resilience: ResilienceConfig | None = None,
    cache_predicate: ShouldCacheHook | None = None,
) -> LedgerConfig | None:
    """Return ledger settings, or ``None`` when no gateway URL is configured."""

    gateway_url = optional_env("LEDGER_GATEWAY_URL")
    if gateway_url is None:
        return None

    values = require_env_vars(("LEDGER_API_TOKEN",))
    return LedgerConfig(
        api_token=values["LEDGER_API_TOKEN"],
        public_base_url=(optional_env("PUBLIC_BASE_URL") or "http://localhost:8080").rstrip("/"),
        resilience=resilience
        or ResilienceConfig(
            name="ledger",
            base_url=gateway_url.rstrip("/") + "/",
            timeout_seconds=LEDGER_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            cache=CacheConfig(should_cache=cache_predicate),
        ),
        gas_floor_wei=env_int("LEDGER_GAS_FLOOR_WEI", GAS_FLOOR_WEI),
        top_up_wei=env_int("LEDGER_TOP_UP_WEI", GAS_TOP_UP_WEI),
        confirmation_timeout=env_float(
            "LEDGER_CONFIRMATION_TIMEOUT_SECONDS", CONFIRMATION_TIMEOUT_SECONDS
        ),
        poll_interval=env_float("LEDGER_POLL_SECONDS", CONFIRMATION_POLL_SECONDS),
        max_attempts=env_int("LEDGER_MAX_ATTEMPTS", MAX_DISPATCH_ATTEMPTS),
    )

"""Settings for the outbound HTTP clients (LLM classifier and ledger gateway)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

ShouldCacheHook = Callable[[object], bool]


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport retries. Only idempotent reads are replayed; a resent write could double-spend."""

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 10.0
    methods: frozenset[str] = frozenset({"GET"})
    statuses: frozenset[int] = frozenset({429, 502, 503, 504})


# Classifier calls get one attempt; curation and condensation own the fallback.
NO_RETRY = RetryPolicy(total=0)


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """In-process response cache. ``should_cache`` receives the decoded JSON body."""

    ttl_seconds: float | None = None
    should_cache: ShouldCacheHook | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = field(default_factory=CacheConfig)

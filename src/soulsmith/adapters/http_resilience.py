"""Async httpx client with transport retries, a rate limiter and an optional response cache."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from soulsmith.config.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
    ShouldCacheHook,
)

if TYPE_CHECKING:
    from types import TracebackType

__all__ = [
    "CacheConfig",
    "RateLimit",
    "ResilienceConfig",
    "ResilientClient",
    "RetryPolicy",
]

log = getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        allowed_methods=tuple(policy.methods),
        status_forcelist=tuple(policy.statuses),
        retry_on_exceptions=(httpx.TimeoutException, httpx.NetworkError),
    )


class ResilientClient:
    """Thin wrapper the classifier and ledger adapters open once per call."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        limit = config.ratelimit
        self._limiter = AsyncLimiter(limit.max_calls, limit.per_seconds) if limit else None

        options: dict[str, Any] = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(retry=build_retry(config.retry)),
        }
        if config.base_url is not None:
            options["base_url"] = config.base_url

        if config.cache is None:
            self._client: httpx.AsyncClient = httpx.AsyncClient(**options)
        else:
            self._client = _cache_client(config.cache, options)
        log.debug("HTTP client %s ready (cache=%s)", config.name, config.cache is not None)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._limiter is None:
            return await self._client.request(method, url, **kwargs)
        async with self._limiter:
            return await self._client.request(method, url, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)


class _JsonPredicateFilter(BaseFilter[HishelCacheResponse]):
    """Lets hishel store a response only when the predicate accepts its JSON body."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return False
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))


def _cache_client(config: CacheConfig, options: dict[str, Any]) -> AsyncCacheClient:
    storage = AsyncSqliteStorage(database_path=":memory:", default_ttl=config.ttl_seconds)
    policy = None
    if config.should_cache is not None:
        policy = FilterPolicy(response_filters=[_JsonPredicateFilter(config.should_cache)])
    return AsyncCacheClient(**options, storage=storage, policy=policy)

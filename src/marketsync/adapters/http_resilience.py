"""Rate-limited, retrying and optionally caching async HTTP client."""

from __future__ import annotations

import json
from contextlib import nullcontext
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import AuthTypes, HeaderTypes, QueryParamTypes, RequestData, URLTypes

    from marketsync.config.http_resilience import (
        CacheConfig,
        ResilienceConfig,
        ResponseHook,
        RetryPolicy,
        ShouldCacheHook,
    )

log = getLogger(__name__)

SQLITE_MEMORY = ":memory:"


class RequestOptions(TypedDict, total=False):
    data: RequestData | None
    json: object
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    auth: AuthTypes | None


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: float
    headers: dict[str, str]
    event_hooks: dict[str, list[ResponseHook]]
    transport: httpx.AsyncBaseTransport


def build_retry(policy: RetryPolicy) -> Retry:
    """Translate a retry policy into the httpx-retries strategy object."""

    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
        backoff_jitter=policy.backoff_jitter,
    )


def client_options(config: ResilienceConfig) -> AsyncClientOptions:
    options: AsyncClientOptions = {
        "timeout": config.timeout_seconds,
        "transport": RetryTransport(retry=build_retry(config.retry)),
    }
    if config.base_url is not None:
        options["base_url"] = config.base_url
    if config.default_headers:
        options["headers"] = dict(config.default_headers)
    if config.response_hooks:
        options["event_hooks"] = {"response": list(config.response_hooks)}
    return options


class ResilientClient:
    """One ``httpx.AsyncClient`` per provider config.

    Requests pass through the provider's rate limiter (when configured), the
    retry transport and, for cacheable providers, the hishel sqlite cache.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        options = client_options(config)
        cache = config.cache
        if cache is not None and cache.enabled:
            self._client: httpx.AsyncClient = AsyncCacheClient(
                **options,
                storage=cache_storage(cache),
                policy=cache_policy(cache.should_cache),
            )
        else:
            self._client = httpx.AsyncClient(**options)

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

    async def request(
        self,
        method: str,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        limiter = self._limiter if self._limiter is not None else nullcontext()
        async with limiter:
            response = await self._client.request(method, url, **kwargs)
        log.debug(
            "%s %s %s -> %s%s",
            self.config.name,
            method,
            url,
            response.status_code,
            " (cached)" if response.extensions.get("hishel_from_cache") else "",
        )
        return response

    async def get(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: URLTypes, **kwargs: Unpack[RequestOptions]) -> httpx.Response:
        return await self.request("POST", url, **kwargs)


class _BodyPredicateFilter(BaseFilter[HishelCacheResponse]):
    """Stores a response only when the predicate accepts its decoded body.

    JSON bodies reach the predicate parsed, anything else as text. Undecodable
    or empty bodies are stored unconditionally.
    """

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if not body:
            return True
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError:
            return True
        return bool(self._predicate(_decode_payload(text)))


def _decode_payload(text: str) -> object:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def cache_storage(config: CacheConfig) -> AsyncSqliteStorage:
    if config.backend == "memory":
        database_path = SQLITE_MEMORY
    elif config.backend == "sqlite":
        if config.sqlite_path is None:
            raise ValueError("sqlite cache backend requires sqlite_path")
        database_path = config.sqlite_path
    else:
        raise ValueError(f"Unsupported cache backend: {config.backend}")
    return AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.default_ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )


def cache_policy(predicate: ShouldCacheHook | None) -> FilterPolicy | None:
    if predicate is None:
        return None
    return FilterPolicy(response_filters=[_BodyPredicateFilter(predicate)])

"""Scripted HTTP APIs served through ``httpx.MockTransport``."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from marketsync.adapters.http_resilience import ResilientClient

if TYPE_CHECKING:
    from marketsync.config.http_resilience import ResilienceConfig

Route = tuple[str, str]
Responder = Callable[[httpx.Request], httpx.Response]

TOKEN_PATH = "/identity/v1/oauth2/token"


@dataclass
class FakeHttpApi:
    """Routes requests by method and path; unknown routes answer 500.

    A list of responses is consumed in order, repeating the last one.
    """

    routes: dict[Route, Responder | list[httpx.Response]] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def on(self, method: str, path: str, *responses: httpx.Response) -> None:
        self.routes[(method, path)] = list(responses)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(500, json={"errors": [{"errorId": 1, "message": "no route"}]})
        if isinstance(route, list):
            return route.pop(0) if len(route) > 1 else route[0]
        return route(request)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and request.url.path == path
        ]

    def client_factory(self, config: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(config)
        client._client = httpx.AsyncClient(  # noqa: SLF001
            transport=httpx.MockTransport(self.handle),
            base_url=config.base_url or "",
        )
        return client


@dataclass
class FakeEbayApi(FakeHttpApi):
    """Answers the OAuth refresh-token grant unless a test overrides it."""

    def __post_init__(self) -> None:
        self.routes.setdefault(
            ("POST", TOKEN_PATH),
            lambda _: httpx.Response(200, json={"access_token": "token-1", "expires_in": 7200}),
        )

"""OAuth refresh-token flow for the eBay Sell APIs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from marketsync.domain.errors import RemoteAuthError
from marketsync.domain.time_windows import utcnow

from .errors import ensure_success, error_from_exception
from .schema import TokenResponse

if TYPE_CHECKING:
    from datetime import datetime

    from marketsync.adapters.http_resilience import ResilientClient
    from marketsync.config.ebay import EbayConfig
    from marketsync.domain.time_windows import Clock

log = getLogger(__name__)

EXPIRY_MARGIN = timedelta(seconds=60)


@dataclass(frozen=True, slots=True)
class AccessToken:
    value: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at - EXPIRY_MARGIN


class EbayTokenProvider:
    """Mint user access tokens from the long-lived refresh token and cache them."""

    def __init__(self, config: EbayConfig, *, clock: Clock = utcnow) -> None:
        self._config = config
        self._clock = clock
        self._token: AccessToken | None = None

    def invalidate(self) -> None:
        self._token = None

    async def access_token(self, client: ResilientClient) -> str:
        now = self._clock()
        if self._token is not None and self._token.is_valid(now):
            return self._token.value

        operation = "oauth token refresh"
        try:
            response = await client.post(
                self._config.token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self._config.refresh_token,
                    "scope": " ".join(self._config.scopes),
                },
                auth=(self._config.client_id, self._config.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as exc:
            raise error_from_exception(exc, operation=operation) from exc
        if response.status_code in {400, 401}:
            raise RemoteAuthError(
                "refresh token rejected",
                operation=operation,
                status_code=response.status_code,
            )
        ensure_success(response, operation=operation)

        try:
            payload = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise RemoteAuthError("malformed token response", operation=operation) from exc

        self._token = AccessToken(
            value=payload.access_token,
            expires_at=now + timedelta(seconds=payload.expires_in),
        )
        log.debug("Refreshed eBay access token, valid for %ss", payload.expires_in)
        return self._token.value

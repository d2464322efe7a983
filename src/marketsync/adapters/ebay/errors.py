"""Map eBay HTTP failures onto the domain's remote error taxonomy."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from marketsync.domain.errors import (
    InvalidQuantityError,
    PermanentRemoteError,
    RemoteAuthError,
    RemoteError,
    TransientRemoteError,
)

from .schema import ErrorResponse

if TYPE_CHECKING:
    import httpx

log = getLogger(__name__)

AUTH_STATUS_CODES = frozenset({401, 403})


def _error_envelope(response: httpx.Response) -> ErrorResponse:
    try:
        return ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return ErrorResponse()


def error_from_response(
    response: httpx.Response,
    *,
    operation: str,
    quantity_update: bool = False,
) -> RemoteError:
    """Classify a non-success response.

    ``quantity_update`` marks availability writes, where a 400 means the
    marketplace rejected the quantity itself.
    """

    envelope = _error_envelope(response)
    status = response.status_code
    message = envelope.message or response.reason_phrase or "request failed"
    log.debug("eBay %s failed with HTTP %s: %s", operation, status, response.text[:500])

    if status in AUTH_STATUS_CODES:
        error_type: type[RemoteError] = RemoteAuthError
    elif status == 429 or status >= 500:
        error_type = TransientRemoteError
    elif quantity_update and status == 400:
        error_type = InvalidQuantityError
    else:
        error_type = PermanentRemoteError
    return error_type(
        message,
        operation=operation,
        status_code=status,
        error_ids=envelope.error_ids,
    )


def error_from_exception(exc: Exception, *, operation: str) -> TransientRemoteError:
    return TransientRemoteError(f"{type(exc).__name__}: {exc}", operation=operation)


def ensure_success(
    response: httpx.Response,
    *,
    operation: str,
    quantity_update: bool = False,
) -> httpx.Response:
    if response.is_success:
        return response
    raise error_from_response(response, operation=operation, quantity_update=quantity_update)

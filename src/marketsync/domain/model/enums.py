"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Classification(StrEnum):
    """Drift classes between a source item and its mirror, in priority order."""

    OVERSOLD = "oversold"
    QUANTITY_DRIFT = "quantity_drift"
    CONTENT_STALE = "content_stale"
    PRICE_DRIFT = "price_drift"
    NEW_CANDIDATE = "new_candidate"
    STALE_UNAVAILABLE = "stale_unavailable"

    @property
    def priority(self) -> int:
        return _CLASSIFICATION_PRIORITY[self]


_CLASSIFICATION_PRIORITY = {member: index for index, member in enumerate(Classification)}


class CorrectiveAction(StrEnum):
    NONE = "none"
    CREATE_LISTING = "create_listing"
    UPDATE_QUANTITY = "update_quantity"
    UPDATE_LISTING = "update_listing"
    END_LISTING = "end_listing"


class ListingState(StrEnum):
    UNLISTED = "unlisted"
    ACTIVE = "active"
    ENDED = "ended"


class OutcomeStatus(StrEnum):
    """Result of one corrective action on one record."""

    SUCCEEDED = "succeeded"
    RECOVERED = "recovered"
    ENDED = "ended"
    SKIPPED = "skipped"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class OrderDimension(StrEnum):
    PAID = "paid"
    SHIPPED = "shipped"
    CANCELED = "canceled"

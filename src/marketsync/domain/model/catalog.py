"""Catalog records: the authoritative source item and its marketplace mirror."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from marketsync.domain.policy import MAX_REMOTE_QUANTITY, NOT_LISTED_QUANTITY

from .enums import ListingState

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class SourceItem:
    """Warehouse catalog record owned by the external catalog system."""

    id: str
    updated: datetime
    name: str = ""
    group_id: str = ""
    quantity: int = 0
    price: Decimal = Decimal("0.00")
    listable: bool = False
    available_from: datetime | None = None
    available_until: datetime | None = None
    release_date: datetime | None = None
    shop_id: str | None = None
    ean: str | None = None
    description: str = ""

    @property
    def sku(self) -> str:
        return self.id


def _validate_mirror_quantity(quantity: int) -> int:
    if quantity != NOT_LISTED_QUANTITY and not 0 <= quantity <= MAX_REMOTE_QUANTITY:
        raise ValueError(
            f"Mirror quantity must be {NOT_LISTED_QUANTITY} or within "
            f"0..{MAX_REMOTE_QUANTITY}, got {quantity}"
        )
    return quantity


@dataclass(eq=False, kw_only=True)
class MirrorItem:
    """Last confirmed remote state of one marketplace listing.

    Rows are never hard-deleted: ``deleted`` plus ``quantity == -1`` marks an
    ended listing. At most one live row exists per source item; relisting an
    ended item starts a new row.
    """

    item_id: str
    listing_id: str
    quantity: int
    price: Decimal
    created: datetime
    updated: datetime
    offer_id: str | None = None
    deleted: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        _validate_mirror_quantity(self.quantity)

    @property
    def is_active(self) -> bool:
        return self.deleted is None and self.quantity >= 0

    @property
    def state(self) -> ListingState:
        if self.deleted is not None:
            return ListingState.ENDED
        if self.quantity < 0:
            return ListingState.UNLISTED
        return ListingState.ACTIVE

    def confirm_sync(
        self,
        *,
        now: datetime,
        quantity: int,
        price: Decimal | None = None,
        listing_id: str | None = None,
        offer_id: str | None = None,
    ) -> None:
        """Record a remote change that the marketplace confirmed."""

        self.quantity = _validate_mirror_quantity(quantity)
        if price is not None:
            self.price = price
        if listing_id:
            self.listing_id = listing_id
        if offer_id:
            self.offer_id = offer_id
        self.updated = now

    def mark_ended(self, *, now: datetime) -> None:
        self.quantity = NOT_LISTED_QUANTITY
        self.deleted = now
        self.updated = now

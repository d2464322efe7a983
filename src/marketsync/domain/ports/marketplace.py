"""Port describing the remote marketplace (inventory, offers and orders)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime
    from decimal import Decimal

    from marketsync.domain.carriers import Carrier

OPEN_FULFILLMENT_STATUSES = frozenset({"NOT_STARTED"})
ACTIVE_CANCEL_STATES = frozenset({"CANCELED", "IN_PROGRESS"})


@dataclass(frozen=True, slots=True)
class ListingDraft:
    """Marketplace payloads for one listing, built by the listing-content collaborator."""

    sku: str
    inventory_item: Mapping[str, object]
    offer: Mapping[str, object]


@dataclass(frozen=True, slots=True)
class ListingReceipt:
    listing_id: str
    offer_id: str


@dataclass(frozen=True, slots=True)
class RemoteOffer:
    offer_id: str
    sku: str
    status: str = ""
    listing_id: str | None = None
    price: Decimal | None = None
    quantity: int | None = None

    @property
    def is_published(self) -> bool:
        return bool(self.listing_id)


@dataclass(frozen=True, slots=True)
class RemoteInventoryItem:
    sku: str
    quantity: int


@dataclass(frozen=True, slots=True)
class InventoryPage:
    items: tuple[RemoteInventoryItem, ...]
    offset: int
    total: int

    @property
    def next_offset(self) -> int | None:
        following = self.offset + len(self.items)
        if not self.items or following >= self.total:
            return None
        return following


@dataclass(frozen=True, slots=True)
class MigrationResult:
    listing_id: str
    succeeded: bool
    sku: str | None = None
    offer_id: str | None = None
    message: str = ""


@dataclass(frozen=True, slots=True)
class RemoteOrderLine:
    line_item_id: str
    quantity: int
    sku: str | None = None
    legacy_item_id: str | None = None
    title: str = ""
    unit_price: Decimal | None = None
    fee: Decimal | None = None


@dataclass(frozen=True, slots=True)
class RemoteShippingAddress:
    """Where the buyer wants the order delivered, with their contact details."""

    full_name: str = ""
    email: str = ""
    company: str = ""
    line1: str = ""
    line2: str = ""
    postal_code: str = ""
    city: str = ""
    state: str = ""
    country_code: str = ""
    phone: str = ""


@dataclass(frozen=True, slots=True)
class RemoteOrder:
    order_id: str
    created: datetime
    buyer: str = ""
    fulfillment_status: str = ""
    payment_status: str = ""
    cancel_state: str | None = None
    paid_at: datetime | None = None
    total: Decimal | None = None
    postage: Decimal | None = None
    ship_to: RemoteShippingAddress | None = None
    lines: tuple[RemoteOrderLine, ...] = field(default_factory=tuple)

    @property
    def is_canceled(self) -> bool:
        return self.cancel_state in ACTIVE_CANCEL_STATES

    @property
    def is_open(self) -> bool:
        """Orders still awaiting shipment that were not canceled on the marketplace."""

        if self.is_canceled:
            return False
        return (
            self.fulfillment_status in OPEN_FULFILLMENT_STATUSES or self.payment_status == "PAID"
        )


@dataclass(frozen=True, slots=True)
class OrderPage:
    orders: tuple[RemoteOrder, ...]
    offset: int
    total: int

    @property
    def next_offset(self) -> int | None:
        following = self.offset + len(self.orders)
        if not self.orders or following >= self.total:
            return None
        return following


@dataclass(frozen=True, slots=True)
class RemoteFulfillment:
    fulfillment_id: str
    tracking_number: str = ""
    carrier: str = ""


@runtime_checkable
class MarketplaceClient(Protocol):
    """Typed marketplace operations.

    Every call returns a structured success value or raises a
    :class:`~marketsync.domain.errors.RemoteError` subclass. Mutations use
    "set to X" semantics so repeating an already-applied call is harmless.
    """

    def create_listing(self, draft: ListingDraft) -> ListingReceipt: ...

    def update_listing(self, draft: ListingDraft, *, offer_id: str) -> ListingReceipt: ...

    def set_available_quantity(self, sku: str, quantity: int) -> None: ...

    def get_offers(self, sku: str) -> Sequence[RemoteOffer]: ...

    def withdraw_offer(self, offer_id: str) -> None: ...

    def bulk_migrate(self, listing_ids: Sequence[str]) -> Sequence[MigrationResult]: ...

    def list_inventory_items(self, *, offset: int, limit: int) -> InventoryPage: ...

    def list_orders(
        self,
        *,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
        fulfillment_status: str | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> OrderPage: ...

    def get_order(self, order_id: str) -> RemoteOrder: ...

    def get_shipping_fulfillments(self, order_id: str) -> Sequence[RemoteFulfillment]: ...

    def mark_shipped(
        self,
        order_id: str,
        *,
        tracking: str,
        carrier: Carrier,
        shipped_at: datetime,
    ) -> str: ...

    def cancel_order(self, order_id: str, *, reason: str) -> None: ...

    def issue_refund(
        self,
        order_id: str,
        *,
        reason: str,
        amount: Decimal | None = None,
        comment: str | None = None,
    ) -> str | None: ...

    def mark_paid(self, order_id: str) -> bool: ...

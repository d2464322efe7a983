"""Order ledger records and their marketplace mirror."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from .enums import OrderDimension

if TYPE_CHECKING:
    from datetime import datetime

MARKETPLACE_SOURCE = "ebay"


@dataclass(eq=False, kw_only=True)
class SourceInvoice:
    """Authoritative invoice; marketplace orders become invoices on import."""

    received: datetime
    updated: datetime
    id: int | None = None
    source: str = MARKETPLACE_SOURCE
    source_ref: str | None = None
    buyer: str = ""
    customer_id: int | None = None
    pay_date: datetime | None = None
    dispatch_date: datetime | None = None
    closed: bool = False
    tracking: str = ""
    shipper: str = ""
    total: Decimal = Decimal("0.00")
    postage: Decimal = Decimal("0.00")

    @property
    def has_tracking(self) -> bool:
        return bool(self.tracking and self.tracking.strip())


@dataclass(eq=False, kw_only=True)
class SourceInvoiceLine:
    invoice_id: int
    item_id: str
    quantity: int
    price: Decimal
    name: str = ""
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class MirrorTransaction:
    """Shadow of one marketplace order line item.

    ``updated`` advances on every evaluation; the per-dimension ``*_checked``
    stamps are the guards that stop an unchanged invoice from being evaluated
    again for that dimension.
    """

    transaction_id: str
    order_id: str
    invoice_id: int
    created: datetime
    item_id: str | None = None
    legacy_item_id: str | None = None
    buyer: str = ""
    quantity: int = 1
    fee: Decimal = Decimal("0.00")
    paid: bool = False
    shipped: bool = False
    canceled: bool = False
    tracking: str = ""
    updated: datetime | None = None
    paid_checked: datetime | None = None
    shipped_checked: datetime | None = None
    canceled_checked: datetime | None = None

    def checked_at(self, dimension: OrderDimension) -> datetime | None:
        match dimension:
            case OrderDimension.PAID:
                return self.paid_checked
            case OrderDimension.SHIPPED:
                return self.shipped_checked
            case OrderDimension.CANCELED:
                return self.canceled_checked

    def mark_checked(self, dimension: OrderDimension, *, now: datetime) -> None:
        match dimension:
            case OrderDimension.PAID:
                self.paid_checked = now
            case OrderDimension.SHIPPED:
                self.shipped_checked = now
            case OrderDimension.CANCELED:
                self.canceled_checked = now
        self.updated = now


@dataclass(frozen=True, slots=True)
class OrderPair:
    """Mirror transaction joined with its source invoice."""

    transaction: MirrorTransaction
    invoice: SourceInvoice

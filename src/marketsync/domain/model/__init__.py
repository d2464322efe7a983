"""Domain model for catalog, order ledger and their marketplace mirrors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .catalog import MirrorItem, SourceItem
from .checkpoint import SyncCheckpoint
from .customer import Customer
from .enums import (
    Classification,
    CorrectiveAction,
    ListingState,
    OrderDimension,
    OutcomeStatus,
)
from .orders import (
    MARKETPLACE_SOURCE,
    MirrorTransaction,
    OrderPair,
    SourceInvoice,
    SourceInvoiceLine,
)

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class ItemPair:
    """Source item joined with its live mirror row, loaded in one round trip.

    ``source`` is ``None`` when a mirror row references a deleted catalog item.
    ``last_sold`` is the most recent payment date of any invoice containing the item.
    """

    item_id: str
    source: SourceItem | None
    mirror: MirrorItem | None
    last_sold: datetime | None = None


__all__ = [
    "MARKETPLACE_SOURCE",
    "Classification",
    "CorrectiveAction",
    "Customer",
    "ItemPair",
    "ListingState",
    "MirrorItem",
    "MirrorTransaction",
    "OrderDimension",
    "OrderPair",
    "OutcomeStatus",
    "SourceInvoice",
    "SourceInvoiceLine",
    "SourceItem",
    "SyncCheckpoint",
]

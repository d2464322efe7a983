"""Thresholds and time windows steering reconciliation decisions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Final

MAX_REMOTE_QUANTITY: Final[int] = 3
NOT_LISTED_QUANTITY: Final[int] = -1


@dataclass(frozen=True, slots=True)
class SyncPolicy:
    """Tunable knobs of the reconciliation and order-status rules.

    ``price_threshold`` is the smallest price difference worth pushing to the
    marketplace; ``reprice_threshold`` marks an item as a repricing candidate.
    ``recent_update_window`` and ``sales_lookback`` guard against relisting
    long-dormant items. ``shipment_freshness`` and ``cancellation_window`` bound
    which historical order events are still pushed to the marketplace.
    """

    price_threshold: Decimal = Decimal("0.01")
    reprice_threshold: Decimal = Decimal("0.50")
    listing_surcharge: Decimal = Decimal("1.00")
    recent_update_window: timedelta = timedelta(days=90)
    sales_lookback: timedelta = timedelta(days=180)
    preorder_window: timedelta = timedelta(days=30)
    shipment_freshness: timedelta = timedelta(days=90)
    cancellation_window: timedelta = timedelta(days=30)
    order_import_lookback: timedelta = timedelta(days=10)
    recent_change_window: timedelta = timedelta(hours=6)
    stale_out_of_stock_age: timedelta = timedelta(days=7)
    batch_size: int = 50
    migration_chunk_size: int = 5
    migration_pause_seconds: float = 2.0
    max_error_details: int = 10

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if not 1 <= self.migration_chunk_size <= 5:
            raise ValueError("migration_chunk_size must be between 1 and 5")
        if self.price_threshold <= 0 or self.reprice_threshold < self.price_threshold:
            raise ValueError("reprice_threshold must be >= price_threshold > 0")

"""Synchronization policy loaded from the environment."""

from __future__ import annotations

from datetime import timedelta

from marketsync.domain.policy import SyncPolicy

from .env import env_decimal, env_float, env_int
from .errors import ConfigurationError

_DEFAULTS = SyncPolicy()


def _days(name: str, default: timedelta) -> timedelta:
    return timedelta(days=env_int(name, default.days))


def get_sync_policy() -> SyncPolicy:
    try:
        return SyncPolicy(
            price_threshold=env_decimal("SYNC_PRICE_THRESHOLD", _DEFAULTS.price_threshold),
            reprice_threshold=env_decimal("SYNC_REPRICE_THRESHOLD", _DEFAULTS.reprice_threshold),
            listing_surcharge=env_decimal("SYNC_LISTING_SURCHARGE", _DEFAULTS.listing_surcharge),
            recent_update_window=_days("SYNC_RECENT_UPDATE_DAYS", _DEFAULTS.recent_update_window),
            sales_lookback=_days("SYNC_SALES_LOOKBACK_DAYS", _DEFAULTS.sales_lookback),
            preorder_window=_days("SYNC_PREORDER_DAYS", _DEFAULTS.preorder_window),
            shipment_freshness=_days(
                "SYNC_SHIPMENT_FRESHNESS_DAYS", _DEFAULTS.shipment_freshness
            ),
            cancellation_window=_days(
                "SYNC_CANCELLATION_WINDOW_DAYS", _DEFAULTS.cancellation_window
            ),
            order_import_lookback=_days(
                "SYNC_ORDER_LOOKBACK_DAYS", _DEFAULTS.order_import_lookback
            ),
            batch_size=env_int("SYNC_BATCH_SIZE", _DEFAULTS.batch_size, minimum=1),
            migration_chunk_size=env_int(
                "SYNC_MIGRATION_CHUNK_SIZE", _DEFAULTS.migration_chunk_size, minimum=1
            ),
            migration_pause_seconds=env_float(
                "SYNC_MIGRATION_PAUSE_SECONDS", _DEFAULTS.migration_pause_seconds
            ),
            max_error_details=env_int("SYNC_MAX_ERROR_DETAILS", _DEFAULTS.max_error_details),
        )
    except ValueError as exc:
        raise ConfigurationError(f"Invalid sync policy: {exc}") from exc

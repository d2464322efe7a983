"""Application wiring: default adapters for every sync entry point."""

from __future__ import annotations

from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from marketsync.adapters.ebay import EbayClient
from marketsync.adapters.images import ShopImageLookup, has_product_image
from marketsync.adapters.listing_content import ListingContentBuilder
from marketsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    is_started,
    startup,
)
from marketsync.config import (
    ConfigurationError,
    get_ebay_config,
    get_image_lookup_config,
    get_sync_policy,
)
from marketsync.domain.reporting import SyncReport
from marketsync.domain.sync_service import SyncService
from marketsync.domain.time_windows import utcnow

if TYPE_CHECKING:
    from marketsync.domain.policy import SyncPolicy
    from marketsync.domain.ports import ListingContent, MarketplaceClient
    from marketsync.domain.sync_service import UnitOfWorkFactory
    from marketsync.domain.time_windows import Clock

log = getLogger(__name__)


class NotificationTopic(StrEnum):
    ITEM_SOLD = "ITEM_SOLD"
    FIXED_PRICE_TRANSACTION = "FIXED_PRICE_TRANSACTION"
    AUCTION_TRANSACTION = "AUCTION_TRANSACTION"
    ORDER_PAYMENT_RECEIVED = "ORDER_PAYMENT_RECEIVED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ITEM_MARKED_SHIPPED = "ITEM_MARKED_SHIPPED"
    ITEM_CLOSED = "ITEM_CLOSED"


_ORDER_TOPICS = frozenset(
    {
        NotificationTopic.ITEM_SOLD,
        NotificationTopic.FIXED_PRICE_TRANSACTION,
        NotificationTopic.AUCTION_TRANSACTION,
    }
)


def start_database(database_uri: str | None = None) -> None:
    """Open and migrate the database once; failures surface as configuration errors."""

    if is_started():
        return
    try:
        startup(database_uri=database_uri)
    except (SQLAlchemyError, StartupError) as exc:
        raise ConfigurationError(f"Database startup failed: {exc}") from exc


def build_sync_service(
    *,
    client: MarketplaceClient | None = None,
    content: ListingContent | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    policy: SyncPolicy | None = None,
    clock: Clock = utcnow,
) -> SyncService:
    """Assemble a sync service; defaults come from the environment."""

    effective_policy = policy or get_sync_policy()
    if client is None or content is None:
        ebay_config = get_ebay_config()
        client = client or EbayClient(ebay_config)
        if content is None:
            images = ShopImageLookup(get_image_lookup_config(cache_predicate=has_product_image))
            content = ListingContentBuilder(ebay_config, images)
    if unit_of_work_factory is None:
        start_database()
        unit_of_work_factory = SqlAlchemyUnitOfWork

    log.debug("Sync service ready with policy %s", effective_policy)
    return SyncService(
        client=client,
        content=content,
        unit_of_work_factory=unit_of_work_factory,
        policy=effective_policy,
        clock=clock,
    )


def handle_marketplace_notification(
    topic: str,
    order_id: str,
    *,
    service: SyncService | None = None,
) -> SyncReport | None:
    """Route a push notification to the matching single-record entry point.

    Returns ``None`` for topics that need no action.
    """

    try:
        known = NotificationTopic(topic.upper())
    except ValueError:
        log.info("Ignoring unknown notification topic %s", topic)
        return None

    if known not in _ORDER_TOPICS and known not in {
        NotificationTopic.ORDER_PAYMENT_RECEIVED,
        NotificationTopic.ORDER_CANCELLED,
    }:
        log.info("Acknowledged notification %s for %s", known, order_id)
        return None

    effective = service or build_sync_service()
    log.info("Handling notification %s for order %s", known, order_id)
    if known in _ORDER_TOPICS:
        return effective.reconcile_single_order(order_id)
    if known is NotificationTopic.ORDER_PAYMENT_RECEIVED:
        return effective.reconcile_single_payment(order_id)
    return effective.reconcile_single_cancellation(order_id)

"""Adopt remote listings into the mirror store (inventory pull and legacy migration)."""

from __future__ import annotations

from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING, Final

from marketsync.domain.errors import MissingCounterpartError
from marketsync.domain.model import MirrorItem, OutcomeStatus
from marketsync.domain.policy import MAX_REMOTE_QUANTITY
from marketsync.domain.reconciliation import listing_price
from marketsync.domain.time_windows import utcnow

if TYPE_CHECKING:
    from marketsync.domain.policy import SyncPolicy
    from marketsync.domain.ports import (
        MarketplaceClient,
        MigrationResult,
        RemoteInventoryItem,
        SyncRepositories,
    )
    from marketsync.domain.time_windows import Clock

log = getLogger(__name__)

INVENTORY_PULL_CHECKPOINT: Final[str] = "remote-inventory-pull"


def mirrored_quantity(remote_quantity: int) -> int:
    """Clamp a remote availability into the mirror's quantity domain."""

    return max(0, min(remote_quantity, MAX_REMOTE_QUANTITY))


class RemoteInventoryReconciler:
    def __init__(
        self,
        *,
        client: MarketplaceClient,
        policy: SyncPolicy,
        clock: Clock = utcnow,
    ) -> None:
        self._client = client
        self._policy = policy
        self._clock = clock

    def adopt(self, remote: RemoteInventoryItem, repositories: SyncRepositories) -> OutcomeStatus:
        """Reflect one pulled inventory item in the mirror store."""

        source = repositories.items.get(remote.sku)
        if source is None:
            raise MissingCounterpartError(remote.sku)

        quantity = mirrored_quantity(remote.quantity)
        live = repositories.mirror_items.get_live(remote.sku)
        now = self._clock()
        if live is not None:
            if live.quantity == quantity:
                return OutcomeStatus.UNCHANGED
            log.info(
                "Remote quantity of %s is %s, mirror had %s",
                remote.sku,
                quantity,
                live.quantity,
            )
            live.confirm_sync(now=now, quantity=quantity)
            return OutcomeStatus.SUCCEEDED

        offers = self._client.get_offers(remote.sku)
        published = next((offer for offer in offers if offer.is_published), None)
        if published is None or published.listing_id is None:
            log.info("Inventory item %s has no published offer; not adopted", remote.sku)
            return OutcomeStatus.SKIPPED

        price = published.price if published.price is not None else listing_price(
            source, self._policy
        )
        repositories.mirror_items.add(
            MirrorItem(
                item_id=remote.sku,
                listing_id=published.listing_id,
                offer_id=published.offer_id,
                quantity=quantity,
                price=Decimal(price),
                created=now,
                updated=now,
            )
        )
        log.info("Adopted remote listing %s for %s", published.listing_id, remote.sku)
        return OutcomeStatus.SUCCEEDED

    def record_migration(
        self,
        result: MigrationResult,
        repositories: SyncRepositories,
    ) -> OutcomeStatus:
        """Store a successfully migrated legacy listing as a mirror row.

        The migration response carries no availability, so the row starts at
        quantity 0 and the next quantity run pushes the real value.
        """

        if not result.succeeded or result.sku is None:
            raise ValueError(f"Migration of {result.listing_id} did not succeed")
        source = repositories.items.get(result.sku)
        if source is None:
            raise MissingCounterpartError(result.sku)

        now = self._clock()
        live = repositories.mirror_items.get_live(result.sku)
        if live is not None:
            if live.listing_id == result.listing_id and live.offer_id == result.offer_id:
                return OutcomeStatus.UNCHANGED
            live.listing_id = result.listing_id
            live.offer_id = result.offer_id
            live.updated = now
            return OutcomeStatus.SUCCEEDED

        repositories.mirror_items.add(
            MirrorItem(
                item_id=result.sku,
                listing_id=result.listing_id,
                offer_id=result.offer_id,
                quantity=0,
                price=listing_price(source, self._policy),
                created=now,
                updated=now,
            )
        )
        log.info("Migrated legacy listing %s for %s", result.listing_id, result.sku)
        return OutcomeStatus.SUCCEEDED

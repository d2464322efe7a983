"""Listing lifecycle: create, update and end marketplace listings.

The mirror row is the record of what the marketplace confirmed. It is written
only after the remote call succeeded; a failed call leaves it untouched so the
drift is picked up again on the next cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from marketsync.domain.errors import PermanentRemoteError, RemoteAuthError, RemoteError
from marketsync.domain.model import CorrectiveAction, MirrorItem, OutcomeStatus
from marketsync.domain.ports.marketplace import ListingReceipt
from marketsync.domain.reconciliation import listing_price, target_quantity
from marketsync.domain.time_windows import utcnow

if TYPE_CHECKING:
    from marketsync.domain.model import SourceItem
    from marketsync.domain.policy import SyncPolicy
    from marketsync.domain.ports import (
        ListingContent,
        MarketplaceClient,
        MirrorItemRepository,
        RemoteOffer,
    )
    from marketsync.domain.reconciliation import ItemDecision
    from marketsync.domain.time_windows import Clock

log = getLogger(__name__)

_CHANGED = frozenset({OutcomeStatus.SUCCEEDED, OutcomeStatus.RECOVERED, OutcomeStatus.ENDED})


@dataclass(frozen=True, slots=True)
class ListingOutcome:
    item_id: str
    action: CorrectiveAction
    status: OutcomeStatus
    detail: str = ""

    @property
    def changed(self) -> bool:
        return self.status in _CHANGED


class ListingLifecycleController:
    """Executes corrective listing actions for items of one unit of work."""

    def __init__(
        self,
        *,
        client: MarketplaceClient,
        content: ListingContent,
        mirror_items: MirrorItemRepository,
        policy: SyncPolicy,
        clock: Clock = utcnow,
    ) -> None:
        self._client = client
        self._content = content
        self._mirror_items = mirror_items
        self._policy = policy
        self._clock = clock

    def apply(self, decision: ItemDecision) -> ListingOutcome:
        source, mirror = decision.pair.source, decision.pair.mirror
        if source is None:
            raise ValueError(f"Cannot act on {decision.item_id} without a source item")
        match decision.action:
            case CorrectiveAction.CREATE_LISTING:
                return self.create_listing(source)
            case CorrectiveAction.UPDATE_QUANTITY:
                return self.update_quantity(source, _require_mirror(decision))
            case CorrectiveAction.UPDATE_LISTING:
                return self.update_listing(source, _require_mirror(decision))
            case CorrectiveAction.END_LISTING:
                return self.end_listing(_require_mirror(decision))
            case CorrectiveAction.NONE:
                return ListingOutcome(
                    item_id=decision.item_id,
                    action=CorrectiveAction.NONE,
                    status=OutcomeStatus.UNCHANGED,
                    detail="in sync" if mirror is not None else "not listable",
                )

    def create_listing(self, source: SourceItem) -> ListingOutcome:
        action = CorrectiveAction.CREATE_LISTING
        live = self._mirror_items.get_live(source.id)
        if live is not None and live.is_active:
            return _outcome(source.id, action, OutcomeStatus.UNCHANGED, "already listed")

        quantity = target_quantity(source.quantity)
        if quantity <= 0:
            return _outcome(source.id, action, OutcomeStatus.SKIPPED, "nothing in stock")

        images = list(self._content.image_urls(source))
        if not images:
            log.info("Skipping listing for %s: no image available", source.id)
            return _outcome(source.id, action, OutcomeStatus.SKIPPED, "no image")

        price = listing_price(source, self._policy)
        draft = self._content.build_draft(source, quantity=quantity, price=price, images=images)

        status = OutcomeStatus.SUCCEEDED
        try:
            receipt = self._client.create_listing(draft)
        except RemoteError:
            recovered = self._recover_listing(source.sku)
            if recovered is None:
                raise
            log.warning(
                "Create for %s failed but listing %s already exists; adopting it",
                source.id,
                recovered.listing_id,
            )
            receipt = recovered
            status = OutcomeStatus.RECOVERED

        now = self._clock()
        if live is not None:
            live.confirm_sync(
                now=now,
                quantity=quantity,
                price=price,
                listing_id=receipt.listing_id,
                offer_id=receipt.offer_id,
            )
        else:
            self._mirror_items.add(
                MirrorItem(
                    item_id=source.id,
                    listing_id=receipt.listing_id,
                    offer_id=receipt.offer_id,
                    quantity=quantity,
                    price=price,
                    created=now,
                    updated=now,
                )
            )
        log.info(
            "Listed %s as %s (quantity=%s, price=%s)",
            source.id,
            receipt.listing_id,
            quantity,
            price,
        )
        return _outcome(source.id, action, status, receipt.listing_id)

    def update_quantity(self, source: SourceItem, mirror: MirrorItem) -> ListingOutcome:
        action = CorrectiveAction.UPDATE_QUANTITY
        if not mirror.is_active:
            return _outcome(mirror.item_id, action, OutcomeStatus.UNCHANGED, "not listed")

        target = target_quantity(source.quantity)
        if target <= 0:
            return self.end_listing(mirror)
        if mirror.quantity == target:
            return _outcome(mirror.item_id, action, OutcomeStatus.UNCHANGED, "in sync")

        try:
            self._client.set_available_quantity(source.sku, target)
        except RemoteAuthError:
            raise
        except PermanentRemoteError as exc:
            log.warning(
                "Quantity %s rejected for %s (%s); ending listing instead",
                target,
                mirror.item_id,
                exc,
            )
            return self.end_listing(mirror)

        previous = mirror.quantity
        mirror.confirm_sync(now=self._clock(), quantity=target)
        log.info("Quantity of %s set from %s to %s", mirror.item_id, previous, target)
        return _outcome(mirror.item_id, action, OutcomeStatus.SUCCEEDED, f"{previous}->{target}")

    def update_listing(self, source: SourceItem, mirror: MirrorItem) -> ListingOutcome:
        action = CorrectiveAction.UPDATE_LISTING
        if not mirror.is_active:
            return _outcome(mirror.item_id, action, OutcomeStatus.UNCHANGED, "not listed")

        quantity = target_quantity(source.quantity)
        if quantity <= 0:
            return self.end_listing(mirror)

        images = list(self._content.image_urls(source))
        if not images:
            if mirror.quantity != quantity:
                log.info("No image for %s; pushing quantity only", source.id)
                return self.update_quantity(source, mirror)
            log.info("Skipping update for %s: no image available", source.id)
            return _outcome(source.id, action, OutcomeStatus.SKIPPED, "no image")

        offer_id = mirror.offer_id
        if offer_id is None:
            offer = self._find_offer(source.sku)
            if offer is None:
                raise PermanentRemoteError(
                    f"No offer found for listing {mirror.listing_id}",
                    operation="update_listing",
                )
            offer_id = offer.offer_id

        price = listing_price(source, self._policy)
        draft = self._content.build_draft(source, quantity=quantity, price=price, images=images)
        receipt = self._client.update_listing(draft, offer_id=offer_id)

        mirror.confirm_sync(
            now=self._clock(),
            quantity=quantity,
            price=price,
            listing_id=receipt.listing_id,
            offer_id=receipt.offer_id,
        )
        log.info("Updated listing %s for %s", receipt.listing_id, source.id)
        return _outcome(source.id, action, OutcomeStatus.SUCCEEDED, receipt.listing_id)

    def end_listing(self, mirror: MirrorItem) -> ListingOutcome:
        action = CorrectiveAction.END_LISTING
        if mirror.deleted is not None:
            return _outcome(mirror.item_id, action, OutcomeStatus.UNCHANGED, "already ended")

        offer_id = mirror.offer_id
        if offer_id is None:
            offer = self._find_offer(mirror.item_id)
            offer_id = offer.offer_id if offer is not None and offer.is_published else None

        if offer_id is None:
            log.warning(
                "No published offer for %s (listing %s); marking ended",
                mirror.item_id,
                mirror.listing_id,
            )
        else:
            self._client.withdraw_offer(offer_id)

        mirror.mark_ended(now=self._clock())
        log.info("Ended listing %s for %s", mirror.listing_id, mirror.item_id)
        return _outcome(mirror.item_id, action, OutcomeStatus.ENDED, mirror.listing_id)

    def _find_offer(self, sku: str) -> RemoteOffer | None:
        offers = list(self._client.get_offers(sku))
        for offer in offers:
            if offer.is_published:
                return offer
        return offers[0] if offers else None

    def _recover_listing(self, sku: str) -> ListingReceipt | None:
        try:
            offer = self._find_offer(sku)
        except RemoteError:
            log.warning("Recovery read for %s failed", sku, exc_info=True)
            return None
        if offer is None or not offer.listing_id:
            return None
        return ListingReceipt(listing_id=offer.listing_id, offer_id=offer.offer_id)


def _require_mirror(decision: ItemDecision) -> MirrorItem:
    if decision.pair.mirror is None:
        raise ValueError(f"{decision.action} for {decision.item_id} requires a mirror row")
    return decision.pair.mirror


def _outcome(
    item_id: str,
    action: CorrectiveAction,
    status: OutcomeStatus,
    detail: str = "",
) -> ListingOutcome:
    return ListingOutcome(item_id=item_id, action=action, status=status, detail=detail)

"""Batch and event-driven entry points of the reconciliation engine.

Every entry point processes records independently: each item gets its own
unit of work, is re-read and re-classified right before acting (so overlapping
runs converge instead of repeating work), and is committed on its own. Errors
are caught at the item boundary and recorded in the returned report.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from marketsync.domain.errors import MissingCounterpartError, RemoteError
from marketsync.domain.inventory import INVENTORY_PULL_CHECKPOINT, RemoteInventoryReconciler
from marketsync.domain.listing import ListingLifecycleController
from marketsync.domain.model import Classification, OrderDimension, OutcomeStatus
from marketsync.domain.orders import OrderImporter, OrderStatusSynchronizer, needs_evaluation
from marketsync.domain.ports.persistence import OrderQuery
from marketsync.domain.reconciliation import ReconciliationEngine
from marketsync.domain.reporting import SyncReport
from marketsync.domain.time_windows import utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from marketsync.domain.policy import SyncPolicy
    from marketsync.domain.ports import (
        ListingContent,
        MarketplaceClient,
        MigrationResult,
        MirrorItemRepository,
        RemoteInventoryItem,
        RemoteOrder,
        SyncUnitOfWork,
    )
    from marketsync.domain.reconciliation import ItemDecision
    from marketsync.domain.time_windows import Clock

log = getLogger(__name__)

UnitOfWorkFactory = Callable[[], "SyncUnitOfWork"]


class CandidateView(StrEnum):
    """Read-only candidate lists for dashboards."""

    OVERSOLD = "oversold"
    QUANTITIES = "quantities"
    PRICES = "prices"
    NEW = "new"
    RECENT = "recent"
    STALE = "stale"


_VIEW_CLASSIFICATION = {
    CandidateView.OVERSOLD: Classification.OVERSOLD,
    CandidateView.QUANTITIES: Classification.QUANTITY_DRIFT,
    CandidateView.PRICES: Classification.PRICE_DRIFT,
    CandidateView.NEW: Classification.NEW_CANDIDATE,
}


class SyncService:
    def __init__(
        self,
        *,
        client: MarketplaceClient,
        content: ListingContent,
        unit_of_work_factory: UnitOfWorkFactory,
        policy: SyncPolicy,
        clock: Clock = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._content = content
        self._uow_factory = unit_of_work_factory
        self._policy = policy
        self._clock = clock
        self._sleep = sleep
        self.engine = ReconciliationEngine(policy=policy, clock=clock)
        self._synchronizer = OrderStatusSynchronizer(client=client, policy=policy, clock=clock)
        self._importer = OrderImporter(client=client, clock=clock)
        self._inventory = RemoteInventoryReconciler(client=client, policy=policy, clock=clock)

    # Listings -----------------------------------------------------------------

    def reconcile_new_listings(self, limit: int | None = None) -> SyncReport:
        return self._run(Classification.NEW_CANDIDATE, "new-listings", limit=limit)

    def reconcile_content_updates(self, limit: int | None = None) -> SyncReport:
        report = self._run(Classification.CONTENT_STALE, "content-updates", limit=limit)
        remaining = None if limit is None else max(limit - sum(report.counts.values()), 0)
        if remaining != 0:
            report.merge(self._run(Classification.PRICE_DRIFT, "content-updates", limit=remaining))
        return report

    def reconcile_quantities(self) -> SyncReport:
        return self._run(Classification.QUANTITY_DRIFT, "quantities")

    def reconcile_oversold(self) -> SyncReport:
        return self._run(Classification.OVERSOLD, "oversold")

    def end_stale_listings(self) -> SyncReport:
        return self._run(Classification.STALE_UNAVAILABLE, "end-stale")

    def _run(
        self,
        classification: Classification,
        operation: str,
        *,
        limit: int | None = None,
    ) -> SyncReport:
        report = SyncReport(operation=operation, max_errors=self._policy.max_error_details)
        now = self._clock()
        log.info("Starting %s run (limit=%s)", operation, limit)
        attempted = 0
        after: str | None = None
        while True:
            with self._uow_factory() as uow:
                page = self.engine.page(
                    uow.repositories.mirror_items, classification, now=now, after=after
                )
            for item_id in page.missing:
                log.warning("Skipping %s: %s", item_id, MissingCounterpartError(item_id))
                report.record_missing(item_id)
            for decision in page.decisions:
                if limit is not None and attempted >= limit:
                    log.info("Finished %s: %s", operation, report.summary())
                    return report
                attempted += 1
                self._process_item(decision.item_id, classification, operation, report)
            if page.next_after is None:
                break
            after = page.next_after
        log.info("Finished %s: %s", operation, report.summary())
        return report

    def _process_item(
        self,
        item_id: str,
        classification: Classification,
        operation: str,
        report: SyncReport,
    ) -> None:
        try:
            with self._uow_factory() as uow:
                pair = uow.repositories.mirror_items.get_pair(item_id)
                if pair is None or pair.source is None:
                    log.warning("Skipping %s: %s", item_id, MissingCounterpartError(item_id))
                    report.record_missing(item_id)
                    return
                decision = self.engine.evaluate(pair)
                if classification not in decision.classifications:
                    log.debug("%s no longer matches %s", item_id, classification)
                    report.record(OutcomeStatus.UNCHANGED)
                    return
                outcome = self._controller(uow.repositories.mirror_items).apply(decision)
                uow.commit()
        except RemoteError as exc:
            log.warning("%s failed for item %s: %s", operation, item_id, exc)
            report.record_error(item_id, operation, exc)
            return
        except Exception as exc:
            log.exception("Unexpected error during %s for item %s", operation, item_id)
            report.record_error(item_id, operation, exc)
            return
        report.record(outcome.status)

    def _controller(self, mirror_items: MirrorItemRepository) -> ListingLifecycleController:
        return ListingLifecycleController(
            client=self._client,
            content=self._content,
            mirror_items=mirror_items,
            policy=self._policy,
            clock=self._clock,
        )

    # Remote inventory ---------------------------------------------------------

    def pull_remote_inventory(self, limit: int) -> SyncReport:
        """Walk the remote inventory, resuming where the previous run stopped."""

        report = SyncReport(operation="pull-inventory", max_errors=self._policy.max_error_details)
        with self._uow_factory() as uow:
            checkpoint = uow.repositories.checkpoints.get(INVENTORY_PULL_CHECKPOINT)
        offset: int | None = int(checkpoint.cursor) if checkpoint is not None else 0
        log.info("Pulling remote inventory from offset %s (limit=%s)", offset, limit)

        processed = 0
        while offset is not None and processed < limit:
            page_size = min(self._policy.batch_size, limit - processed)
            try:
                page = self._client.list_inventory_items(offset=offset, limit=page_size)
            except RemoteError as exc:
                log.warning("Inventory page at offset %s failed: %s", offset, exc)
                report.record_error(f"offset:{offset}", "pull-inventory", exc)
                break
            for remote in page.items:
                self._adopt_item(remote, report)
            processed += len(page.items)
            offset = page.next_offset
            self._save_checkpoint(offset)

        log.info("Finished pull-inventory: %s", report.summary())
        return report

    def _adopt_item(self, remote: RemoteInventoryItem, report: SyncReport) -> None:
        try:
            with self._uow_factory() as uow:
                status = self._inventory.adopt(remote, uow.repositories)
                uow.commit()
        except MissingCounterpartError as exc:
            log.warning("Skipping remote item %s: %s", remote.sku, exc)
            report.record_missing(remote.sku)
            return
        except Exception as exc:
            log.exception("Adopting remote item %s failed", remote.sku)
            report.record_error(remote.sku, "pull-inventory", exc)
            return
        report.record(status)

    def _save_checkpoint(self, offset: int | None) -> None:
        with self._uow_factory() as uow:
            if offset is None:
                uow.repositories.checkpoints.clear(INVENTORY_PULL_CHECKPOINT)
            else:
                uow.repositories.checkpoints.save(
                    INVENTORY_PULL_CHECKPOINT, str(offset), now=self._clock()
                )
            uow.commit()

    def migrate_legacy_listings(self, listing_ids: Sequence[str]) -> SyncReport:
        """Bulk-migrate legacy listings in small chunks with a pause in between."""

        report = SyncReport(operation="migrate", max_errors=self._policy.max_error_details)
        size = self._policy.migration_chunk_size
        chunks = [listing_ids[start : start + size] for start in range(0, len(listing_ids), size)]
        for index, chunk in enumerate(chunks):
            if index:
                self._sleep(self._policy.migration_pause_seconds)
            try:
                results = self._client.bulk_migrate(chunk)
            except RemoteError as exc:
                log.warning("Migration chunk %s failed: %s", list(chunk), exc)
                for listing_id in chunk:
                    report.record_error(listing_id, "migrate", exc)
                continue
            for result in results:
                self._record_migration(result, report)
        log.info("Finished migrate: %s", report.summary())
        return report

    def _record_migration(self, result: MigrationResult, report: SyncReport) -> None:
        if not result.succeeded or result.sku is None:
            log.warning("Listing %s was not migrated: %s", result.listing_id, result.message)
            report.record_failure(result.listing_id, "migrate", result.message or "not migrated")
            return
        try:
            with self._uow_factory() as uow:
                status = self._inventory.record_migration(result, uow.repositories)
                uow.commit()
        except MissingCounterpartError as exc:
            log.warning("Migrated listing %s: %s", result.listing_id, exc)
            report.record_missing(result.listing_id)
            return
        except Exception as exc:
            log.exception("Recording migration of %s failed", result.listing_id)
            report.record_error(result.listing_id, "migrate", exc)
            return
        report.record(status)

    # Orders -------------------------------------------------------------------

    def import_orders(self, since: datetime | None = None) -> SyncReport:
        report = SyncReport(operation="import-orders", max_errors=self._policy.max_error_details)
        start = since or self._clock() - self._policy.order_import_lookback
        log.info("Importing orders created since %s", start.isoformat())
        try:
            for order in self._importer.iter_orders(start):
                if not order.is_open:
                    report.record(OutcomeStatus.SKIPPED)
                    continue
                self._import_order(order, report)
        except RemoteError as exc:
            log.warning("Listing orders failed: %s", exc)
            report.record_error("orders", "import-orders", exc)
        log.info("Finished import-orders: %s", report.summary())
        return report

    def _import_order(self, order: RemoteOrder, report: SyncReport) -> None:
        try:
            with self._uow_factory() as uow:
                imported = self._importer.import_order(order, uow.repositories)
                uow.commit()
        except RemoteError as exc:
            log.warning("Importing order %s failed: %s", order.order_id, exc)
            report.record_error(order.order_id, "import-orders", exc)
            return
        except Exception as exc:
            log.exception("Unexpected error importing order %s", order.order_id)
            report.record_error(order.order_id, "import-orders", exc)
            return
        report.record(OutcomeStatus.SUCCEEDED if imported else OutcomeStatus.UNCHANGED)

    def synchronize_order_status(self) -> SyncReport:
        report = SyncReport(operation="order-status", max_errors=self._policy.max_error_details)
        for dimension in OrderDimension:
            self._synchronize_dimension(dimension, report)
        log.info("Finished order-status: %s", report.summary())
        return report

    def _synchronize_dimension(self, dimension: OrderDimension, report: SyncReport) -> None:
        after: str | None = None
        batch_size = self._policy.batch_size
        while True:
            with self._uow_factory() as uow:
                pending = uow.repositories.transactions.find_pending(
                    OrderQuery(dimension=dimension, after=after, limit=batch_size)
                )
                order_ids = list(dict.fromkeys(pair.transaction.order_id for pair in pending))
                last_id = pending[-1].transaction.transaction_id if pending else None
            for order_id in order_ids:
                self._synchronize_order(order_id, dimension, report)
            if last_id is None or len(pending) < batch_size:
                return
            after = last_id

    def _synchronize_order(
        self,
        order_id: str,
        dimension: OrderDimension,
        report: SyncReport,
    ) -> None:
        operation = f"order-{dimension}"
        try:
            with self._uow_factory() as uow:
                pairs = [
                    pair
                    for pair in uow.repositories.transactions.pairs_for_order(order_id)
                    if needs_evaluation(pair, dimension)
                ]
                if not pairs:
                    return
                outcome = self._synchronizer.synchronize(dimension, pairs)
                uow.commit()
        except Exception as exc:
            log.exception("Unexpected error during %s for order %s", operation, order_id)
            report.record_error(order_id, operation, exc)
            return
        if outcome.error is not None:
            report.record_error(order_id, operation, outcome.error)
        else:
            report.record(outcome.status)

    def reconcile_single_order(self, order_id: str) -> SyncReport:
        """Import one order if it is new, then bring all of its status dimensions in line."""

        report = SyncReport(operation="order", max_errors=self._policy.max_error_details)
        try:
            order = self._client.get_order(order_id)
        except RemoteError as exc:
            log.warning("Fetching order %s failed: %s", order_id, exc)
            report.record_error(order_id, "order", exc)
            return report
        if order.is_open:
            self._import_order(order, report)
        for dimension in OrderDimension:
            self._synchronize_order(order_id, dimension, report)
        return report

    def reconcile_single_payment(self, order_id: str) -> SyncReport:
        report = SyncReport(operation="order-payment", max_errors=self._policy.max_error_details)
        self._synchronize_order(order_id, OrderDimension.PAID, report)
        return report

    def reconcile_single_cancellation(self, order_id: str) -> SyncReport:
        report = SyncReport(
            operation="order-cancellation", max_errors=self._policy.max_error_details
        )
        self._synchronize_order(order_id, OrderDimension.CANCELED, report)
        return report

    # Full cycle and views -----------------------------------------------------

    def reconcile_all(self) -> list[SyncReport]:
        """One full cycle; oversold items first, order status last."""

        return [
            self.reconcile_oversold(),
            self.end_stale_listings(),
            self.reconcile_quantities(),
            self.reconcile_content_updates(),
            self.reconcile_new_listings(),
            self.import_orders(),
            self.synchronize_order_status(),
        ]

    def status_overview(self) -> dict[Classification, int]:
        with self._uow_factory() as uow:
            return self.engine.overview(uow.repositories.mirror_items)

    def candidates(self, view: CandidateView, limit: int | None = None) -> list[ItemDecision]:
        with self._uow_factory() as uow:
            repository = uow.repositories.mirror_items
            if view is CandidateView.RECENT:
                found = self.engine.recently_changed(repository)
            elif view is CandidateView.STALE:
                found = self.engine.stale_out_of_stock(repository)
            else:
                found = list(self.engine.iter_matching(repository, _VIEW_CLASSIFICATION[view]))
        return found[:limit] if limit is not None else found

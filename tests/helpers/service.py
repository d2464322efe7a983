"""Recording stand-in for the sync service used by CLI and notification tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from marketsync.domain.model import Classification, OutcomeStatus
from marketsync.domain.reporting import SyncReport

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from marketsync.domain.reconciliation import ItemDecision
    from marketsync.domain.sync_service import CandidateView


@dataclass
class RecordingSyncService:
    calls: list[tuple[str, object]] = field(default_factory=list)
    decisions: list[ItemDecision] = field(default_factory=list)

    def _report(self, name: str, argument: object = None) -> SyncReport:
        self.calls.append((name, argument))
        report = SyncReport(operation=name)
        report.record(OutcomeStatus.SUCCEEDED)
        return report

    def called(self, name: str) -> list[object]:
        return [argument for call, argument in self.calls if call == name]

    def reconcile_new_listings(self, limit: int | None = None) -> SyncReport:
        return self._report("new-listings", limit)

    def reconcile_content_updates(self, limit: int | None = None) -> SyncReport:
        return self._report("content-updates", limit)

    def reconcile_quantities(self) -> SyncReport:
        return self._report("quantities")

    def reconcile_oversold(self) -> SyncReport:
        return self._report("oversold")

    def end_stale_listings(self) -> SyncReport:
        return self._report("end-stale")

    def pull_remote_inventory(self, limit: int) -> SyncReport:
        return self._report("pull-inventory", limit)

    def migrate_legacy_listings(self, listing_ids: Sequence[str]) -> SyncReport:
        return self._report("migrate", list(listing_ids))

    def import_orders(self, since: datetime | None = None) -> SyncReport:
        return self._report("import-orders", since)

    def synchronize_order_status(self) -> SyncReport:
        return self._report("order-status")

    def reconcile_single_order(self, order_id: str) -> SyncReport:
        return self._report("order", order_id)

    def reconcile_single_payment(self, order_id: str) -> SyncReport:
        return self._report("order-payment", order_id)

    def reconcile_single_cancellation(self, order_id: str) -> SyncReport:
        return self._report("order-cancellation", order_id)

    def reconcile_all(self) -> list[SyncReport]:
        return [self._report("oversold"), self._report("order-status")]

    def status_overview(self) -> dict[Classification, int]:
        self.calls.append(("status", None))
        return {classification: 0 for classification in Classification} | {
            Classification.OVERSOLD: 2
        }

    def candidates(self, view: CandidateView, limit: int | None = None) -> list[ItemDecision]:
        self.calls.append(("candidates", (view, limit)))
        return self.decisions[:limit] if limit is not None else list(self.decisions)

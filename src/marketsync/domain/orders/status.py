"""Order status synchronizer: mirror payment, shipment and cancellation.

Each dimension follows the same pattern: pick transactions whose dimension is
not yet reflected and whose invoice changed after the last evaluation, push the
change to the marketplace when still meaningful, then record the evaluation.
The evaluation is recorded for every outcome, including window skips and
remote errors, so an unchanged invoice is never evaluated twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from marketsync.domain.carriers import resolve_carrier
from marketsync.domain.errors import RemoteError, TransientRemoteError
from marketsync.domain.model import OrderDimension, OutcomeStatus
from marketsync.domain.time_windows import utcnow, within

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from marketsync.domain.model import OrderPair, SourceInvoice
    from marketsync.domain.policy import SyncPolicy
    from marketsync.domain.ports import MarketplaceClient
    from marketsync.domain.time_windows import Clock

log = getLogger(__name__)

CANCEL_REASON: Final[str] = "OUT_OF_STOCK"
CLOSED_CANCEL_STATES: Final[frozenset[str]] = frozenset(
    {
        "CANCELED",
        "CANCEL_CLOSED_FOR_COMMITMENT",
        "CANCEL_CLOSED_NO_REFUND",
        "CANCEL_CLOSED_UNKNOWN_REFUND",
        "CANCEL_CLOSED_WITH_REFUND",
        "CANCEL_COMPLETE",
    }
)


@dataclass(frozen=True, slots=True)
class StatusOutcome:
    order_id: str
    dimension: OrderDimension
    status: OutcomeStatus
    remote_called: bool = False
    transactions: int = 0
    detail: str = ""
    error: RemoteError | None = None


def needs_evaluation(pair: OrderPair, dimension: OrderDimension) -> bool:
    """Whether the invoice state for ``dimension`` is not yet reflected in the mirror."""

    transaction, invoice = pair.transaction, pair.invoice
    checked = transaction.checked_at(dimension)
    invoice_changed = checked is None or invoice.updated > checked
    match dimension:
        case OrderDimension.PAID:
            return not transaction.paid and invoice.pay_date is not None and invoice_changed
        case OrderDimension.SHIPPED:
            if invoice.dispatch_date is None or not invoice.has_tracking:
                return False
            if transaction.shipped and transaction.tracking == invoice.tracking.strip():
                return False
            return invoice_changed
        case OrderDimension.CANCELED:
            return invoice.closed and not transaction.canceled and invoice_changed


class OrderStatusSynchronizer:
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

    def synchronize(self, dimension: OrderDimension, pairs: Sequence[OrderPair]) -> StatusOutcome:
        """Evaluate one dimension for all pending line items of a single order."""

        if not pairs:
            raise ValueError("synchronize() needs at least one transaction")
        order_id = pairs[0].transaction.order_id
        if any(pair.transaction.order_id != order_id for pair in pairs):
            raise ValueError("synchronize() expects transactions of a single order")

        now = self._clock()
        invoice = pairs[0].invoice
        try:
            remote_called, detail = self._push(dimension, pairs, invoice, now)
        except RemoteError as exc:
            kind = "transient" if isinstance(exc, TransientRemoteError) else "permanent"
            log.warning(
                "Marking order %s as %s failed (%s): %s",
                order_id,
                dimension,
                kind,
                exc,
            )
            for pair in pairs:
                pair.transaction.mark_checked(dimension, now=now)
            return StatusOutcome(
                order_id=order_id,
                dimension=dimension,
                status=OutcomeStatus.FAILED,
                remote_called=True,
                transactions=len(pairs),
                detail=str(exc),
                error=exc,
            )

        for pair in pairs:
            self._reflect(dimension, pair, now)
        return StatusOutcome(
            order_id=order_id,
            dimension=dimension,
            status=OutcomeStatus.SUCCEEDED if remote_called else OutcomeStatus.SKIPPED,
            remote_called=remote_called,
            transactions=len(pairs),
            detail=detail,
        )

    def _push(
        self,
        dimension: OrderDimension,
        pairs: Sequence[OrderPair],
        invoice: SourceInvoice,
        now: datetime,
    ) -> tuple[bool, str]:
        order_id = pairs[0].transaction.order_id
        match dimension:
            case OrderDimension.PAID:
                return self._push_paid(order_id)
            case OrderDimension.SHIPPED:
                return self._push_shipped(order_id, invoice, now)
            case OrderDimension.CANCELED:
                created = min(pair.transaction.created for pair in pairs)
                return self._push_canceled(order_id, created, now)

    def _push_paid(self, order_id: str) -> tuple[bool, str]:
        confirmed = self._client.mark_paid(order_id)
        log.info("Order %s payment mirrored (remote paid=%s)", order_id, confirmed)
        return True, "paid" if confirmed else "payment pending remotely"

    def _push_shipped(
        self,
        order_id: str,
        invoice: SourceInvoice,
        now: datetime,
    ) -> tuple[bool, str]:
        dispatch_date = invoice.dispatch_date
        tracking = invoice.tracking.strip()
        freshness = self._policy.shipment_freshness
        if dispatch_date is None or not within(dispatch_date, freshness, now=now):
            log.info(
                "Order %s shipped on %s, outside the freshness window; not pushed",
                order_id,
                dispatch_date,
            )
            return False, "outside freshness window"

        carrier = resolve_carrier(invoice.shipper, tracking)
        existing = self._client.get_shipping_fulfillments(order_id)
        if any(fulfillment.tracking_number == tracking for fulfillment in existing):
            log.info("Order %s already carries tracking %s", order_id, tracking)
            return True, "already fulfilled"

        fulfillment_id = self._client.mark_shipped(
            order_id,
            tracking=tracking,
            carrier=carrier,
            shipped_at=dispatch_date,
        )
        log.info(
            "Order %s marked shipped via %s (%s), fulfillment %s",
            order_id,
            carrier,
            tracking,
            fulfillment_id,
        )
        return True, f"{carrier}:{tracking}"

    def _push_canceled(self, order_id: str, created: datetime, now: datetime) -> tuple[bool, str]:
        age_days = (now - created).days
        if age_days > self._policy.cancellation_window.days:
            log.info(
                "Order %s is %s days old, beyond the cancellation window; canceled locally only",
                order_id,
                age_days,
            )
            return False, "outside cancellation window"

        order = self._client.get_order(order_id)
        if order.cancel_state in CLOSED_CANCEL_STATES:
            log.info("Order %s already canceled remotely (%s)", order_id, order.cancel_state)
            return True, "already canceled"

        self._client.cancel_order(order_id, reason=CANCEL_REASON)
        log.info("Order %s canceled (%s)", order_id, CANCEL_REASON)
        return True, CANCEL_REASON

    def _reflect(self, dimension: OrderDimension, pair: OrderPair, now: datetime) -> None:
        transaction, invoice = pair.transaction, pair.invoice
        match dimension:
            case OrderDimension.PAID:
                transaction.paid = True
            case OrderDimension.SHIPPED:
                transaction.shipped = True
                transaction.tracking = invoice.tracking.strip()
            case OrderDimension.CANCELED:
                transaction.canceled = True
        transaction.mark_checked(dimension, now=now)

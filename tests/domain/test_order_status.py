from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from marketsync.domain.carriers import Carrier
from marketsync.domain.errors import PermanentRemoteError, TransientRemoteError
from marketsync.domain.model import OrderDimension, OutcomeStatus
from marketsync.domain.orders import CANCEL_REASON, OrderStatusSynchronizer, needs_evaluation
from marketsync.domain.policy import SyncPolicy
from marketsync.domain.ports.marketplace import RemoteFulfillment, RemoteOrder
from tests.helpers.catalog import (
    NOW,
    fixed_clock,
    make_invoice,
    make_order_pair,
    make_transaction,
)
from tests.helpers.marketplace import FakeMarketplaceClient

if TYPE_CHECKING:
    from marketsync.domain.model import SourceInvoice

ORDER_ID = "12-34567-89012"


def _synchronizer(client: FakeMarketplaceClient) -> OrderStatusSynchronizer:
    return OrderStatusSynchronizer(client=client, policy=SyncPolicy(), clock=fixed_clock())


def _shipped_invoice(**overrides: object) -> SourceInvoice:
    values: dict[str, object] = {
        "dispatch_date": NOW - timedelta(days=1),
        "tracking": " 00340434161094042557 ",
        "shipper": "DHL Paket",
    }
    values.update(overrides)
    return make_invoice(**values)


def test_payment_needs_evaluation_until_checked() -> None:
    pair = make_order_pair(invoice=make_invoice(pay_date=NOW - timedelta(days=2)))

    assert needs_evaluation(pair, OrderDimension.PAID)

    pair.transaction.mark_checked(OrderDimension.PAID, now=NOW)
    assert not needs_evaluation(pair, OrderDimension.PAID)

    pair.invoice.updated = NOW + timedelta(minutes=1)
    assert needs_evaluation(pair, OrderDimension.PAID)


def test_shipment_needs_dispatch_date_and_tracking() -> None:
    assert not needs_evaluation(
        make_order_pair(invoice=make_invoice(dispatch_date=NOW)), OrderDimension.SHIPPED
    )
    assert needs_evaluation(
        make_order_pair(invoice=_shipped_invoice()), OrderDimension.SHIPPED
    )


def test_changed_tracking_is_evaluated_again() -> None:
    transaction = make_transaction(
        shipped=True, tracking="00340434161094042557", shipped_checked=NOW
    )
    same = make_order_pair(transaction, _shipped_invoice())
    corrected = _shipped_invoice(
        tracking="1Z999AA10123456784", updated=NOW + timedelta(minutes=5)
    )
    changed = make_order_pair(transaction, corrected)

    assert not needs_evaluation(same, OrderDimension.SHIPPED)
    assert needs_evaluation(changed, OrderDimension.SHIPPED)

    transaction.mark_checked(OrderDimension.SHIPPED, now=NOW + timedelta(minutes=10))
    assert not needs_evaluation(changed, OrderDimension.SHIPPED)


def test_mark_paid_updates_every_line_of_the_order() -> None:
    client = FakeMarketplaceClient()
    invoice = make_invoice(pay_date=NOW - timedelta(hours=3))
    pairs = [
        make_order_pair(make_transaction("10001"), invoice),
        make_order_pair(make_transaction("10002"), invoice),
    ]

    outcome = _synchronizer(client).synchronize(OrderDimension.PAID, pairs)

    assert outcome.status is OutcomeStatus.SUCCEEDED
    assert client.called("mark_paid") == [ORDER_ID]
    assert all(pair.transaction.paid for pair in pairs)
    assert all(pair.transaction.paid_checked == NOW for pair in pairs)


def test_mark_shipped_resolves_carrier_and_strips_tracking() -> None:
    client = FakeMarketplaceClient()
    pair = make_order_pair(invoice=_shipped_invoice())

    outcome = _synchronizer(client).synchronize(OrderDimension.SHIPPED, [pair])

    assert outcome.status is OutcomeStatus.SUCCEEDED
    [(order_id, tracking, carrier, _)] = client.called("mark_shipped")
    assert (order_id, tracking, carrier) == (ORDER_ID, "00340434161094042557", Carrier.DHL)
    assert pair.transaction.shipped
    assert pair.transaction.tracking == "00340434161094042557"


def test_existing_fulfillment_is_not_posted_twice() -> None:
    client = FakeMarketplaceClient(
        fulfillments={
            ORDER_ID: [
                RemoteFulfillment(fulfillment_id="F1", tracking_number="00340434161094042557")
            ]
        }
    )
    pair = make_order_pair(invoice=_shipped_invoice())

    outcome = _synchronizer(client).synchronize(OrderDimension.SHIPPED, [pair])

    assert outcome.status is OutcomeStatus.SUCCEEDED
    assert client.called("mark_shipped") == []
    assert pair.transaction.shipped


def test_old_shipment_is_recorded_without_remote_call() -> None:
    client = FakeMarketplaceClient()
    pair = make_order_pair(invoice=_shipped_invoice(dispatch_date=NOW - timedelta(days=120)))

    outcome = _synchronizer(client).synchronize(OrderDimension.SHIPPED, [pair])

    assert outcome.status is OutcomeStatus.SKIPPED
    assert not outcome.remote_called
    assert client.calls == []
    assert pair.transaction.shipped
    assert pair.transaction.shipped_checked == NOW


def test_old_order_is_canceled_locally_only() -> None:
    client = FakeMarketplaceClient()
    pair = make_order_pair(
        make_transaction(created=NOW - timedelta(days=40)),
        make_invoice(closed=True),
    )

    outcome = _synchronizer(client).synchronize(OrderDimension.CANCELED, [pair])

    assert outcome.status is OutcomeStatus.SKIPPED
    assert client.called("cancel_order") == []
    assert pair.transaction.canceled


def test_recent_order_is_canceled_remotely() -> None:
    client = FakeMarketplaceClient(
        orders={ORDER_ID: RemoteOrder(order_id=ORDER_ID, created=NOW - timedelta(days=3))}
    )
    pair = make_order_pair(invoice=make_invoice(closed=True))

    outcome = _synchronizer(client).synchronize(OrderDimension.CANCELED, [pair])

    assert outcome.status is OutcomeStatus.SUCCEEDED
    assert client.called("cancel_order") == [(ORDER_ID, CANCEL_REASON)]
    assert pair.transaction.canceled


def test_already_canceled_order_is_not_canceled_again() -> None:
    client = FakeMarketplaceClient(
        orders={
            ORDER_ID: RemoteOrder(
                order_id=ORDER_ID,
                created=NOW - timedelta(days=3),
                cancel_state="CANCELED",
            )
        }
    )
    pair = make_order_pair(invoice=make_invoice(closed=True))

    _synchronizer(client).synchronize(OrderDimension.CANCELED, [pair])

    assert client.called("cancel_order") == []
    assert pair.transaction.canceled


@pytest.mark.parametrize(
    "error",
    [
        TransientRemoteError("503", operation="mark paid"),
        PermanentRemoteError("order not found", operation="mark paid"),
    ],
)
def test_remote_error_still_records_the_evaluation(error: Exception) -> None:
    client = FakeMarketplaceClient(failures={"mark_paid": error})
    pair = make_order_pair(invoice=make_invoice(pay_date=NOW - timedelta(hours=1)))

    outcome = _synchronizer(client).synchronize(OrderDimension.PAID, [pair])

    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.error is error
    assert not pair.transaction.paid
    assert pair.transaction.paid_checked == NOW
    assert not needs_evaluation(pair, OrderDimension.PAID)


def test_synchronize_rejects_mixed_orders() -> None:
    client = FakeMarketplaceClient()
    pairs = [
        make_order_pair(make_transaction("1", order_id="A")),
        make_order_pair(make_transaction("2", order_id="B")),
    ]

    with pytest.raises(ValueError, match="single order"):
        _synchronizer(client).synchronize(OrderDimension.PAID, pairs)

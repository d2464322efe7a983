"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session  # noqa: TC002

from marketsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyCheckpointRepository,
    SqlAlchemyCustomerRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyMirrorItemRepository,
    SqlAlchemySourceItemRepository,
    SqlAlchemyTransactionRepository,
)
from marketsync.domain.model import (
    Classification,
    Customer,
    OrderDimension,
    SourceInvoiceLine,
)
from marketsync.domain.policy import SyncPolicy
from marketsync.domain.ports.persistence import ItemQuery, OrderQuery
from tests.helpers.catalog import (
    NOW,
    make_invoice,
    make_mirror_item,
    make_source_item,
    make_transaction,
)


def _query(classification: Classification, **kwargs: object) -> ItemQuery:
    return ItemQuery(
        classification=classification,
        now=NOW,
        policy=SyncPolicy(),
        **kwargs,
    )


def _seed_catalog(session: Session) -> None:
    session.add_all(
        [
            make_source_item("A", quantity=1),
            make_source_item("B", quantity=5),
            make_source_item("C", quantity=2),
            make_source_item("D", quantity=2),
            make_mirror_item("A", quantity=3),
            make_mirror_item("B", quantity=1),
            make_mirror_item("C", quantity=2),
            make_mirror_item("GONE", quantity=1),
        ]
    )
    session.commit()


def test_find_pairs_prefilters_oversold_items(sqlite_session: Session) -> None:
    _seed_catalog(sqlite_session)
    repository = SqlAlchemyMirrorItemRepository(sqlite_session)

    pairs = repository.find_pairs(_query(Classification.OVERSOLD))

    assert [pair.item_id for pair in pairs] == ["A", "GONE"]
    assert pairs[0].source is not None
    assert pairs[1].source is None


def test_find_pairs_paginates_by_item_id(sqlite_session: Session) -> None:
    _seed_catalog(sqlite_session)
    repository = SqlAlchemyMirrorItemRepository(sqlite_session)

    first = repository.find_pairs(_query(Classification.QUANTITY_DRIFT, limit=1))
    rest = repository.find_pairs(_query(Classification.QUANTITY_DRIFT, after="A"))

    assert [pair.item_id for pair in first] == ["A"]
    assert [pair.item_id for pair in rest] == ["B", "GONE"]


def test_find_pairs_new_candidates_skip_listed_items(sqlite_session: Session) -> None:
    _seed_catalog(sqlite_session)
    sqlite_session.add_all(
        [
            make_source_item("E", quantity=1),
            make_mirror_item("E", quantity=-1, deleted=NOW - timedelta(days=2)),
            make_source_item("OLD", updated=NOW - timedelta(days=400)),
            make_source_item("HIDDEN", listable=False),
        ]
    )
    sqlite_session.commit()
    repository = SqlAlchemyMirrorItemRepository(sqlite_session)

    pairs = repository.find_pairs(_query(Classification.NEW_CANDIDATE))

    assert [pair.item_id for pair in pairs] == ["D", "E"]
    assert all(pair.mirror is None for pair in pairs)


def test_find_pairs_price_prefilter_accounts_for_surcharge(sqlite_session: Session) -> None:
    sqlite_session.add_all(
        [
            make_source_item("CD", price="12.99"),
            make_mirror_item("CD", price="13.99"),
            make_source_item("LP", price="20.00", name="Emperor - Anthems (LP)", group_id="LP"),
            make_mirror_item("LP", price="20.00"),
        ]
    )
    sqlite_session.commit()
    repository = SqlAlchemyMirrorItemRepository(sqlite_session)

    pairs = repository.find_pairs(_query(Classification.PRICE_DRIFT))

    assert [pair.item_id for pair in pairs] == ["LP"]


def test_get_pair_includes_last_sale(sqlite_session: Session) -> None:
    sqlite_session.add(make_source_item("A"))
    invoice = make_invoice(None, pay_date=NOW - timedelta(days=4))
    sqlite_session.add(invoice)
    sqlite_session.flush()
    assert invoice.id is not None
    sqlite_session.add(
        SourceInvoiceLine(invoice_id=invoice.id, item_id="A", quantity=1, price=Decimal("9.99"))
    )
    sqlite_session.commit()

    pair = SqlAlchemyMirrorItemRepository(sqlite_session).get_pair("A")

    assert pair is not None
    assert pair.mirror is None
    assert pair.last_sold == NOW - timedelta(days=4)


def test_only_one_live_mirror_row_per_item(sqlite_session: Session) -> None:
    repository = SqlAlchemyMirrorItemRepository(sqlite_session)
    repository.add(make_mirror_item("A", quantity=-1, deleted=NOW - timedelta(days=1)))
    repository.add(make_mirror_item("A", listing_id="110550002"))
    sqlite_session.commit()

    live = repository.get_live("A")
    assert live is not None
    assert live.listing_id == "110550002"

    repository.add(make_mirror_item("A", listing_id="110550003"))
    with pytest.raises(IntegrityError):
        sqlite_session.commit()


def test_decrement_quantity_updates_stamp(sqlite_session: Session) -> None:
    repository = SqlAlchemySourceItemRepository(sqlite_session)
    repository.add(make_source_item("A", quantity=1))
    sqlite_session.commit()

    assert repository.decrement_quantity("A", 2, now=NOW)
    assert not repository.decrement_quantity("MISSING", 1, now=NOW)
    sqlite_session.commit()

    item = repository.get("A")
    assert item is not None
    assert item.quantity == -1
    assert item.updated == NOW


def test_invoice_lookup_by_marketplace_reference(sqlite_session: Session) -> None:
    repository = SqlAlchemyInvoiceRepository(sqlite_session)
    repository.add(make_invoice(None))
    repository.flush()

    found = repository.get_by_source_ref("ebay", "12-34567-89012")

    assert found is not None
    assert found.id is not None
    assert repository.get_by_source_ref("ebay", "00-00000-00000") is None


def test_customer_lookup_ignores_email_case(sqlite_session: Session) -> None:
    customers = SqlAlchemyCustomerRepository(sqlite_session)
    invoices = SqlAlchemyInvoiceRepository(sqlite_session)
    customer = Customer(email="kari@example.no", created=NOW, updated=NOW, city="Bergen")
    customers.add(customer)
    customers.flush()
    assert customer.id is not None
    invoices.add(make_invoice(None, customer_id=customer.id))
    sqlite_session.commit()

    found = customers.get_by_email("Kari@Example.NO")
    invoice = invoices.get_by_source_ref("ebay", "12-34567-89012")

    assert found is customer
    assert customers.get_by_email("ola@example.no") is None
    assert invoice is not None
    assert invoice.customer_id == customer.id


def test_find_pending_shipments(sqlite_session: Session) -> None:
    invoices = SqlAlchemyInvoiceRepository(sqlite_session)
    transactions = SqlAlchemyTransactionRepository(sqlite_session)
    shipped = make_invoice(
        None,
        source_ref="ORDER-1",
        dispatch_date=NOW - timedelta(days=1),
        tracking=" 00340434161094042557 ",
    )
    waiting = make_invoice(None, source_ref="ORDER-2")
    invoices.add(shipped)
    invoices.add(waiting)
    invoices.flush()
    assert shipped.id is not None
    assert waiting.id is not None
    transactions.add(make_transaction("T-1", order_id="ORDER-1", invoice_id=shipped.id))
    transactions.add(make_transaction("T-2", order_id="ORDER-1", invoice_id=shipped.id))
    transactions.add(make_transaction("T-3", order_id="ORDER-2", invoice_id=waiting.id))
    transactions.add(
        make_transaction(
            "T-4",
            order_id="ORDER-1",
            invoice_id=shipped.id,
            shipped=True,
            tracking="00340434161094042557",
        )
    )
    sqlite_session.commit()

    pending = transactions.find_pending(OrderQuery(dimension=OrderDimension.SHIPPED))
    after_first = transactions.find_pending(
        OrderQuery(dimension=OrderDimension.SHIPPED, after="T-1")
    )

    assert [pair.transaction.transaction_id for pair in pending] == ["T-1", "T-2"]
    assert [pair.transaction.transaction_id for pair in after_first] == ["T-2"]
    assert pending[0].invoice is shipped
    assert [
        pair.transaction.transaction_id for pair in transactions.pairs_for_order("ORDER-1")
    ] == ["T-1", "T-2", "T-4"]


def test_corrected_tracking_is_pending_until_evaluated(sqlite_session: Session) -> None:
    invoices = SqlAlchemyInvoiceRepository(sqlite_session)
    transactions = SqlAlchemyTransactionRepository(sqlite_session)
    invoice = make_invoice(
        None,
        dispatch_date=NOW - timedelta(days=1),
        tracking="1Z999AA10123456784",
        updated=NOW - timedelta(hours=1),
    )
    invoices.add(invoice)
    invoices.flush()
    assert invoice.id is not None
    for transaction_id, checked in (("T-1", NOW - timedelta(hours=2)), ("T-2", NOW)):
        transactions.add(
            make_transaction(
                transaction_id,
                invoice_id=invoice.id,
                shipped=True,
                tracking="00340434161094042557",
                shipped_checked=checked,
            )
        )
    sqlite_session.commit()

    pending = transactions.find_pending(OrderQuery(dimension=OrderDimension.SHIPPED))

    assert [pair.transaction.transaction_id for pair in pending] == ["T-1"]


def test_find_pending_skips_already_checked_invoices(sqlite_session: Session) -> None:
    invoices = SqlAlchemyInvoiceRepository(sqlite_session)
    transactions = SqlAlchemyTransactionRepository(sqlite_session)
    invoice = make_invoice(None, closed=True, updated=NOW - timedelta(hours=3))
    invoices.add(invoice)
    invoices.flush()
    assert invoice.id is not None
    transactions.add(
        make_transaction("T-1", invoice_id=invoice.id, canceled_checked=NOW - timedelta(hours=1))
    )
    transactions.add(make_transaction("T-2", invoice_id=invoice.id))
    sqlite_session.commit()

    pending = transactions.find_pending(OrderQuery(dimension=OrderDimension.CANCELED))

    assert [pair.transaction.transaction_id for pair in pending] == ["T-2"]


def test_checkpoint_save_update_and_clear(sqlite_session: Session) -> None:
    repository = SqlAlchemyCheckpointRepository(sqlite_session)

    repository.save("remote-inventory-pull", "100", now=NOW)
    sqlite_session.commit()
    repository.save("remote-inventory-pull", "200", now=NOW + timedelta(minutes=5))
    sqlite_session.commit()

    checkpoint = repository.get("remote-inventory-pull")
    assert checkpoint is not None
    assert checkpoint.cursor == "200"
    assert checkpoint.updated == NOW + timedelta(minutes=5)

    repository.clear("remote-inventory-pull")
    sqlite_session.commit()
    sqlite_session.expire_all()

    assert repository.get("remote-inventory-pull") is None

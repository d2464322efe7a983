"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ColumnElement, and_, case, delete, false, func, literal, or_, select, true

from marketsync.adapters.sqlalchemy.mappings import (
    customer_table,
    mirror_item_table,
    mirror_transaction_table,
    source_invoice_line_table,
    source_invoice_table,
    source_item_table,
    sync_checkpoint_table,
)
from marketsync.domain.model import (
    Classification,
    Customer,
    ItemPair,
    MirrorItem,
    MirrorTransaction,
    OrderDimension,
    OrderPair,
    SourceInvoice,
    SourceInvoiceLine,
    SourceItem,
    SyncCheckpoint,
)
from marketsync.domain.policy import MAX_REMOTE_QUANTITY, NOT_LISTED_QUANTITY

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from sqlalchemy import Select
    from sqlalchemy.orm import Session

    from marketsync.domain.ports.persistence import ItemQuery, OrderQuery

_source = source_item_table.c
_mirror = mirror_item_table.c
_invoice = source_invoice_table.c
_line = source_invoice_line_table.c
_customer = customer_table.c
_transaction = mirror_transaction_table.c

# float arithmetic on sqlite numerics; keep the price prefilter a superset
_PRICE_SLACK = Decimal("0.005")
_TAX_REDUCED_MARKERS = ("BOOK", "BUCH", "TICKET")


def _last_sold() -> ColumnElement[datetime]:
    return (
        select(func.max(_invoice.pay_date))
        .select_from(source_invoice_line_table.join(source_invoice_table))
        .where(_line.item_id == _source.id)
        .scalar_subquery()
    )


def _target_quantity() -> ColumnElement[int]:
    return case(
        (_source.quantity <= 0, literal(NOT_LISTED_QUANTITY)),
        (_source.quantity > MAX_REMOTE_QUANTITY, literal(MAX_REMOTE_QUANTITY)),
        else_=_source.quantity,
    )


def _maybe_tax_reduced() -> ColumnElement[bool]:
    """Broad match for items whose parsed format may be a reduced-rate one."""

    name = func.upper(_source.name)
    return or_(
        func.upper(_source.group_id).in_(_TAX_REDUCED_MARKERS),
        *(name.like(f"%{marker}%)%") for marker in _TAX_REDUCED_MARKERS),
    )


def _price_differs(threshold: Decimal, surcharge: Decimal) -> ColumnElement[bool]:
    limit = threshold - _PRICE_SLACK
    with_surcharge = func.abs(_mirror.price - (_source.price + surcharge)) >= limit
    without_surcharge = func.abs(_mirror.price - _source.price) >= limit
    return or_(with_surcharge, and_(_maybe_tax_reduced(), without_surcharge))


def _unavailable(now: datetime) -> ColumnElement[bool]:
    return or_(
        _source.quantity <= 0,
        _source.price <= 0,
        _source.listable.is_(false()),
        and_(_source.available_until.is_not(None), _source.available_until < now),
    )


def _prefilter(query: ItemQuery) -> ColumnElement[bool]:
    policy, now = query.policy, query.now
    match query.classification:
        case Classification.OVERSOLD:
            return _mirror.quantity > _target_quantity()
        case Classification.QUANTITY_DRIFT:
            return _mirror.quantity != _target_quantity()
        case Classification.CONTENT_STALE:
            return and_(
                ~_unavailable(now),
                or_(
                    _source.updated > _mirror.updated,
                    _price_differs(policy.price_threshold, policy.listing_surcharge),
                ),
            )
        case Classification.PRICE_DRIFT:
            return _price_differs(policy.reprice_threshold, policy.listing_surcharge)
        case Classification.STALE_UNAVAILABLE:
            return _unavailable(now)
        case Classification.NEW_CANDIDATE:
            last_sold = _last_sold()
            return and_(
                ~_unavailable(now),
                or_(_source.available_from.is_(None), _source.available_from <= now),
                or_(
                    _source.release_date.is_(None),
                    _source.release_date <= now + policy.preorder_window,
                ),
                or_(
                    _source.updated >= now - policy.recent_update_window,
                    last_sold >= now - policy.sales_lookback,
                ),
                or_(_mirror.id.is_(None), _mirror.quantity < 0),
            )


class SqlAlchemySourceItemRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SourceItem) -> None:
        self.session.add(entity)

    def get(self, item_id: str) -> SourceItem | None:
        return self.session.get(SourceItem, item_id)

    def decrement_quantity(self, item_id: str, quantity: int, *, now: datetime) -> bool:
        item = self.get(item_id)
        if item is None:
            return False
        item.quantity -= quantity
        item.updated = now
        return True


class SqlAlchemyMirrorItemRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: MirrorItem) -> None:
        self.session.add(entity)

    def get_live(self, item_id: str) -> MirrorItem | None:
        stmt = select(MirrorItem).where(_mirror.item_id == item_id, _mirror.deleted.is_(None))
        return self.session.execute(stmt).scalar_one_or_none()

    def get_pair(self, item_id: str) -> ItemPair | None:
        source = self.session.get(SourceItem, item_id)
        mirror = self.get_live(item_id)
        if source is None and mirror is None:
            return None
        last_sold = self.session.execute(
            select(func.max(_invoice.pay_date))
            .select_from(source_invoice_line_table.join(source_invoice_table))
            .where(_line.item_id == item_id)
        ).scalar_one_or_none()
        return ItemPair(item_id=item_id, source=source, mirror=mirror, last_sold=last_sold)

    def find_pairs(self, query: ItemQuery) -> Sequence[ItemPair]:
        if query.classification is Classification.NEW_CANDIDATE:
            stmt = self._unlisted_candidates(query)
        else:
            stmt = self._live_listings(query)
        pairs: list[ItemPair] = []
        for mirror, source, last_sold in self.session.execute(stmt).tuples():
            item_id = source.id if source is not None else mirror.item_id
            pairs.append(
                ItemPair(item_id=item_id, source=source, mirror=mirror, last_sold=last_sold)
            )
        return pairs

    def _live_listings(
        self, query: ItemQuery
    ) -> Select[tuple[MirrorItem, SourceItem | None, datetime | None]]:
        stmt = (
            select(MirrorItem, SourceItem, _last_sold())
            .join_from(
                MirrorItem,
                SourceItem,
                _source.id == _mirror.item_id,
                isouter=True,
            )
            .where(
                _mirror.deleted.is_(None),
                _mirror.quantity >= 0,
                or_(_source.id.is_(None), _prefilter(query)),
            )
            .order_by(_mirror.item_id)
            .limit(query.limit)
        )
        if query.after is not None:
            stmt = stmt.where(_mirror.item_id > query.after)
        return stmt

    def _unlisted_candidates(
        self, query: ItemQuery
    ) -> Select[tuple[MirrorItem | None, SourceItem, datetime | None]]:
        stmt = (
            select(MirrorItem, SourceItem, _last_sold())
            .join_from(
                SourceItem,
                MirrorItem,
                and_(_mirror.item_id == _source.id, _mirror.deleted.is_(None)),
                isouter=True,
            )
            .where(_prefilter(query))
            .order_by(_source.id)
            .limit(query.limit)
        )
        if query.after is not None:
            stmt = stmt.where(_source.id > query.after)
        return stmt


class SqlAlchemyCustomerRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Customer) -> None:
        self.session.add(entity)

    def get_by_email(self, email: str) -> Customer | None:
        stmt = (
            select(Customer)
            .where(func.lower(_customer.email) == email.lower())
            .order_by(_customer.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def flush(self) -> None:
        self.session.flush()


class SqlAlchemyInvoiceRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SourceInvoice) -> None:
        self.session.add(entity)

    def get(self, invoice_id: int) -> SourceInvoice | None:
        return self.session.get(SourceInvoice, invoice_id)

    def get_by_source_ref(self, source: str, source_ref: str) -> SourceInvoice | None:
        stmt = select(SourceInvoice).where(
            _invoice.source == source, _invoice.source_ref == source_ref
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def add_line(self, line: SourceInvoiceLine) -> None:
        self.session.add(line)

    def flush(self) -> None:
        self.session.flush()


def _pending(dimension: OrderDimension) -> ColumnElement[bool]:
    def changed_since(checked: ColumnElement[datetime | None]) -> ColumnElement[bool]:
        return or_(checked.is_(None), _invoice.updated > checked)

    match dimension:
        case OrderDimension.PAID:
            return and_(
                _transaction.paid.is_(false()),
                _invoice.pay_date.is_not(None),
                changed_since(_transaction.paid_checked),
            )
        case OrderDimension.SHIPPED:
            return and_(
                _invoice.dispatch_date.is_not(None),
                func.trim(_invoice.tracking) != "",
                or_(
                    _transaction.shipped.is_(false()),
                    _transaction.tracking != func.trim(_invoice.tracking),
                ),
                changed_since(_transaction.shipped_checked),
            )
        case OrderDimension.CANCELED:
            return and_(
                _invoice.closed.is_(true()),
                _transaction.canceled.is_(false()),
                changed_since(_transaction.canceled_checked),
            )


class SqlAlchemyTransactionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: MirrorTransaction) -> None:
        self.session.add(entity)

    def get(self, transaction_id: str) -> MirrorTransaction | None:
        return self.session.get(MirrorTransaction, transaction_id)

    def find_pending(self, query: OrderQuery) -> Sequence[OrderPair]:
        stmt = (
            select(MirrorTransaction, SourceInvoice)
            .join_from(MirrorTransaction, SourceInvoice, _invoice.id == _transaction.invoice_id)
            .where(_pending(query.dimension))
            .order_by(_transaction.transaction_id)
            .limit(query.limit)
        )
        if query.order_id is not None:
            stmt = stmt.where(_transaction.order_id == query.order_id)
        if query.after is not None:
            stmt = stmt.where(_transaction.transaction_id > query.after)
        return [
            OrderPair(transaction=transaction, invoice=invoice)
            for transaction, invoice in self.session.execute(stmt).tuples()
        ]

    def pairs_for_order(self, order_id: str) -> Sequence[OrderPair]:
        stmt = (
            select(MirrorTransaction, SourceInvoice)
            .join_from(MirrorTransaction, SourceInvoice, _invoice.id == _transaction.invoice_id)
            .where(_transaction.order_id == order_id)
            .order_by(_transaction.transaction_id)
        )
        return [
            OrderPair(transaction=transaction, invoice=invoice)
            for transaction, invoice in self.session.execute(stmt).tuples()
        ]


class SqlAlchemyCheckpointRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, name: str) -> SyncCheckpoint | None:
        return self.session.get(SyncCheckpoint, name)

    def save(self, name: str, cursor: str, *, now: datetime) -> None:
        checkpoint = self.get(name)
        if checkpoint is None:
            self.session.add(SyncCheckpoint(name=name, cursor=cursor, updated=now))
            return
        checkpoint.cursor = cursor
        checkpoint.updated = now

    def clear(self, name: str) -> None:
        self.session.execute(
            delete(sync_checkpoint_table).where(sync_checkpoint_table.c.name == name)
        )

"""Import marketplace orders into the invoice ledger."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING

from marketsync.domain.model import (
    MARKETPLACE_SOURCE,
    MirrorTransaction,
    SourceInvoice,
    SourceInvoiceLine,
)
from marketsync.domain.time_windows import utcnow

from .customers import record_customer

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from marketsync.domain.ports import MarketplaceClient, RemoteOrder, SyncRepositories
    from marketsync.domain.time_windows import Clock

log = getLogger(__name__)

ORDER_PAGE_SIZE = 50


@dataclass(frozen=True, slots=True)
class ImportedOrder:
    order_id: str
    invoice_id: int
    transactions: int
    unknown_skus: tuple[str, ...] = ()


class OrderImporter:
    def __init__(self, *, client: MarketplaceClient, clock: Clock = utcnow) -> None:
        self._client = client
        self._clock = clock

    def iter_orders(
        self,
        since: datetime,
        until: datetime | None = None,
    ) -> Iterator[RemoteOrder]:
        offset: int | None = 0
        while offset is not None:
            page = self._client.list_orders(
                created_from=since,
                created_to=until,
                offset=offset,
                limit=ORDER_PAGE_SIZE,
            )
            yield from page.orders
            offset = page.next_offset

    def import_order(
        self,
        order: RemoteOrder,
        repositories: SyncRepositories,
    ) -> ImportedOrder | None:
        """Create invoice, lines and mirror transactions for one order.

        Returns ``None`` when the order was imported before or has no line items.
        The caller commits; everything written here belongs to one transaction.
        """

        existing = repositories.invoices.get_by_source_ref(MARKETPLACE_SOURCE, order.order_id)
        if existing is not None:
            log.debug("Order %s already imported as invoice %s", order.order_id, existing.id)
            return None

        if not order.lines:
            order = self._client.get_order(order.order_id)
        if not order.lines:
            log.warning("Order %s has no line items; skipping", order.order_id)
            return None

        now = self._clock()
        customer = record_customer(order, repositories.customers, now=now)
        invoice = SourceInvoice(
            received=order.created,
            updated=now,
            source=MARKETPLACE_SOURCE,
            source_ref=order.order_id,
            buyer=order.buyer,
            customer_id=customer.id if customer is not None else None,
            pay_date=order.paid_at,
            total=order.total or Decimal("0.00"),
            postage=order.postage or Decimal("0.00"),
        )
        repositories.invoices.add(invoice)
        repositories.invoices.flush()
        if invoice.id is None:
            raise RuntimeError(f"Invoice for order {order.order_id} was not assigned an id")

        unknown: list[str] = []
        created = 0
        for line in order.lines:
            sku = line.sku
            known = sku is not None and repositories.items.get(sku) is not None
            if sku is not None and known:
                repositories.invoices.add_line(
                    SourceInvoiceLine(
                        invoice_id=invoice.id,
                        item_id=sku,
                        quantity=line.quantity,
                        price=line.unit_price or Decimal("0.00"),
                        name=line.title,
                    )
                )
                repositories.items.decrement_quantity(sku, line.quantity, now=now)
            else:
                unknown.append(sku or line.line_item_id)
                log.warning(
                    "Order %s line %s references unknown SKU %r",
                    order.order_id,
                    line.line_item_id,
                    sku,
                )

            repositories.transactions.add(
                MirrorTransaction(
                    transaction_id=line.line_item_id,
                    order_id=order.order_id,
                    invoice_id=invoice.id,
                    created=order.created,
                    item_id=sku if known else None,
                    legacy_item_id=line.legacy_item_id,
                    buyer=order.buyer,
                    quantity=line.quantity,
                    fee=line.fee or Decimal("0.00"),
                    paid=order.paid_at is not None,
                )
            )
            created += 1

        log.info(
            "Imported order %s as invoice %s with %s line item(s)",
            order.order_id,
            invoice.id,
            created,
        )
        return ImportedOrder(
            order_id=order.order_id,
            invoice_id=invoice.id,
            transactions=created,
            unknown_skus=tuple(unknown),
        )

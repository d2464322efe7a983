"""Ports for persisting source records and their mirrors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from marketsync.domain.model import (
    Customer,
    MirrorItem,
    MirrorTransaction,
    SourceInvoice,
    SourceItem,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from marketsync.domain.model import (
        Classification,
        ItemPair,
        OrderDimension,
        OrderPair,
        SourceInvoiceLine,
        SyncCheckpoint,
    )
    from marketsync.domain.policy import SyncPolicy


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemQuery:
    """Keyset-paginated selection of item pairs that may match a classification.

    Adapters may return a superset; callers confirm each pair with the pure
    classification predicate.
    """

    classification: Classification
    now: datetime
    policy: SyncPolicy
    after: str | None = None
    limit: int = 50


@dataclass(frozen=True, slots=True, kw_only=True)
class OrderQuery:
    """Keyset-paginated selection of transactions whose dimension needs evaluation."""

    dimension: OrderDimension
    order_id: str | None = None
    after: str | None = None
    limit: int = 50


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class SourceItemRepository(Repository[SourceItem], Protocol):
    def get(self, item_id: str) -> SourceItem | None: ...

    def decrement_quantity(self, item_id: str, quantity: int, *, now: datetime) -> bool: ...


@runtime_checkable
class MirrorItemRepository(Repository[MirrorItem], Protocol):
    def get_live(self, item_id: str) -> MirrorItem | None: ...

    def get_pair(self, item_id: str) -> ItemPair | None: ...

    def find_pairs(self, query: ItemQuery) -> Sequence[ItemPair]: ...


@runtime_checkable
class InvoiceRepository(Repository[SourceInvoice], Protocol):
    def get(self, invoice_id: int) -> SourceInvoice | None: ...

    def get_by_source_ref(self, source: str, source_ref: str) -> SourceInvoice | None: ...

    def add_line(self, line: SourceInvoiceLine) -> None: ...

    def flush(self) -> None: ...


@runtime_checkable
class CustomerRepository(Repository[Customer], Protocol):
    def get_by_email(self, email: str) -> Customer | None: ...

    def flush(self) -> None: ...


@runtime_checkable
class TransactionRepository(Repository[MirrorTransaction], Protocol):
    def get(self, transaction_id: str) -> MirrorTransaction | None: ...

    def find_pending(self, query: OrderQuery) -> Sequence[OrderPair]: ...

    def pairs_for_order(self, order_id: str) -> Sequence[OrderPair]: ...


@runtime_checkable
class CheckpointRepository(Protocol):
    def get(self, name: str) -> SyncCheckpoint | None: ...

    def save(self, name: str, cursor: str, *, now: datetime) -> None: ...

    def clear(self, name: str) -> None: ...

"""Order ledger import and status synchronisation."""

from __future__ import annotations

from .customers import record_customer
from .importer import ImportedOrder, OrderImporter
from .status import (
    CANCEL_REASON,
    CLOSED_CANCEL_STATES,
    OrderStatusSynchronizer,
    StatusOutcome,
    needs_evaluation,
)

__all__ = [
    "CANCEL_REASON",
    "CLOSED_CANCEL_STATES",
    "ImportedOrder",
    "OrderImporter",
    "OrderStatusSynchronizer",
    "StatusOutcome",
    "needs_evaluation",
    "record_customer",
]

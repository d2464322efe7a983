"""Drift classification between source items and marketplace mirrors."""

from __future__ import annotations

from .engine import DecisionPage, ReconciliationEngine
from .plan import ItemDecision, corrective_action, decide, prioritise
from .rules import (
    classify,
    is_eligible,
    is_unavailable,
    listing_price,
    matches,
    target_quantity,
)

__all__ = [
    "DecisionPage",
    "ItemDecision",
    "ReconciliationEngine",
    "classify",
    "corrective_action",
    "decide",
    "is_eligible",
    "is_unavailable",
    "listing_price",
    "matches",
    "prioritise",
    "target_quantity",
]

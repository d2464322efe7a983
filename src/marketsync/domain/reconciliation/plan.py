"""Corrective actions derived from a pair's classifications."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from marketsync.domain.model import Classification, CorrectiveAction

from .rules import target_quantity

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marketsync.domain.model import ItemPair


@dataclass(frozen=True, slots=True)
class ItemDecision:
    """What the engine wants done with one item, and why."""

    pair: ItemPair
    classifications: tuple[Classification, ...]
    action: CorrectiveAction

    @property
    def item_id(self) -> str:
        return self.pair.item_id

    @property
    def primary(self) -> Classification | None:
        return self.classifications[0] if self.classifications else None


def ordered(classifications: Iterable[Classification]) -> tuple[Classification, ...]:
    return tuple(sorted(classifications, key=lambda member: member.priority))


def corrective_action(
    classifications: Iterable[Classification],
    pair: ItemPair,
) -> CorrectiveAction:
    """Pick the single action that addresses the highest-priority drift first."""

    found = frozenset(classifications)
    if not found or pair.source is None:
        return CorrectiveAction.NONE
    if Classification.STALE_UNAVAILABLE in found:
        return CorrectiveAction.END_LISTING
    if found & {Classification.OVERSOLD, Classification.QUANTITY_DRIFT}:
        if target_quantity(pair.source.quantity) <= 0:
            return CorrectiveAction.END_LISTING
        # the full update pushes the quantity as well
        if Classification.CONTENT_STALE in found:
            return CorrectiveAction.UPDATE_LISTING
        return CorrectiveAction.UPDATE_QUANTITY
    if found & {Classification.CONTENT_STALE, Classification.PRICE_DRIFT}:
        return CorrectiveAction.UPDATE_LISTING
    if Classification.NEW_CANDIDATE in found:
        return CorrectiveAction.CREATE_LISTING
    return CorrectiveAction.NONE


def decide(pair: ItemPair, classifications: Iterable[Classification]) -> ItemDecision:
    ranked = ordered(classifications)
    return ItemDecision(
        pair=pair,
        classifications=ranked,
        action=corrective_action(ranked, pair),
    )


def prioritise(decisions: Iterable[ItemDecision]) -> list[ItemDecision]:
    """Order decisions by their highest-priority classification, then by item id."""

    def sort_key(decision: ItemDecision) -> tuple[int, str]:
        primary = decision.primary
        rank = primary.priority if primary is not None else len(Classification)
        return rank, decision.item_id

    return sorted(decisions, key=sort_key)

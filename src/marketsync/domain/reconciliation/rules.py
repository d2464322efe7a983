"""Pure drift predicates between a source item and its mirror."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from marketsync.domain.model import Classification
from marketsync.domain.policy import MAX_REMOTE_QUANTITY, NOT_LISTED_QUANTITY
from marketsync.domain.time_windows import within
from marketsync.domain.titles import is_tax_reduced, parse_title

if TYPE_CHECKING:
    from datetime import datetime

    from marketsync.domain.model import ItemPair, MirrorItem, SourceItem
    from marketsync.domain.policy import SyncPolicy

CENT = Decimal("0.01")


def target_quantity(quantity: int) -> int:
    """Quantity the marketplace should advertise for a given stock level.

    Non-positive stock maps to the not-listed sentinel ``-1``; stock above the
    cap is advertised as the cap so remote availability never reveals depth.
    """

    if quantity <= 0:
        return NOT_LISTED_QUANTITY
    return min(quantity, MAX_REMOTE_QUANTITY)


def listing_price(item: SourceItem, policy: SyncPolicy) -> Decimal:
    price = Decimal(item.price)
    if not is_tax_reduced(parse_title(item.name), item.group_id):
        price += policy.listing_surcharge
    return price.quantize(CENT, rounding=ROUND_HALF_UP)


def price_delta(item: SourceItem, mirror: MirrorItem, policy: SyncPolicy) -> Decimal:
    return abs(listing_price(item, policy) - Decimal(mirror.price))


def is_unavailable(item: SourceItem, now: datetime) -> bool:
    """Whether a listed item must be withdrawn."""

    if item.quantity <= 0 or item.price <= 0 or not item.listable:
        return True
    return item.available_until is not None and item.available_until < now


def is_eligible(item: SourceItem, now: datetime, policy: SyncPolicy) -> bool:
    """Whether an unlisted item may be put on the marketplace right now."""

    if is_unavailable(item, now):
        return False
    if item.available_from is not None and item.available_from > now:
        return False
    return item.release_date is None or item.release_date <= now + policy.preorder_window


def is_recent(pair: ItemPair, now: datetime, policy: SyncPolicy) -> bool:
    """Staleness guard: only recently touched or recently sold items are (re)listed."""

    source = pair.source
    if source is not None and within(source.updated, policy.recent_update_window, now=now):
        return True
    return pair.last_sold is not None and within(pair.last_sold, policy.sales_lookback, now=now)


def is_oversold(pair: ItemPair) -> bool:
    source, mirror = pair.source, pair.mirror
    if source is None or mirror is None or not mirror.is_active:
        return False
    return mirror.quantity > target_quantity(source.quantity)


def has_quantity_drift(pair: ItemPair) -> bool:
    source, mirror = pair.source, pair.mirror
    if source is None or mirror is None or not mirror.is_active:
        return False
    return mirror.quantity != target_quantity(source.quantity)


def is_content_stale(pair: ItemPair, now: datetime, policy: SyncPolicy) -> bool:
    source, mirror = pair.source, pair.mirror
    if source is None or mirror is None or not mirror.is_active:
        return False
    if is_unavailable(source, now):
        return False
    if source.updated > mirror.updated:
        return True
    return price_delta(source, mirror, policy) >= policy.price_threshold


def has_price_drift(pair: ItemPair, policy: SyncPolicy) -> bool:
    source, mirror = pair.source, pair.mirror
    if source is None or mirror is None or not mirror.is_active:
        return False
    return price_delta(source, mirror, policy) >= policy.reprice_threshold


def is_new_candidate(pair: ItemPair, now: datetime, policy: SyncPolicy) -> bool:
    source, mirror = pair.source, pair.mirror
    if source is None:
        return False
    if mirror is not None and mirror.is_active:
        return False
    return is_eligible(source, now, policy) and is_recent(pair, now, policy)


def is_stale_unavailable(pair: ItemPair, now: datetime) -> bool:
    source, mirror = pair.source, pair.mirror
    if source is None or mirror is None or not mirror.is_active:
        return False
    return is_unavailable(source, now)


def classify(pair: ItemPair, *, now: datetime, policy: SyncPolicy) -> frozenset[Classification]:
    """Every drift class the pair currently falls into."""

    matches: set[Classification] = set()
    if is_oversold(pair):
        matches.add(Classification.OVERSOLD)
    if has_quantity_drift(pair):
        matches.add(Classification.QUANTITY_DRIFT)
    if is_content_stale(pair, now, policy):
        matches.add(Classification.CONTENT_STALE)
    if has_price_drift(pair, policy):
        matches.add(Classification.PRICE_DRIFT)
    if is_new_candidate(pair, now, policy):
        matches.add(Classification.NEW_CANDIDATE)
    if is_stale_unavailable(pair, now):
        matches.add(Classification.STALE_UNAVAILABLE)
    return frozenset(matches)


def matches(
    pair: ItemPair,
    classification: Classification,
    *,
    now: datetime,
    policy: SyncPolicy,
) -> bool:
    """Single-item predicate for one classification."""

    match classification:
        case Classification.OVERSOLD:
            return is_oversold(pair)
        case Classification.QUANTITY_DRIFT:
            return has_quantity_drift(pair)
        case Classification.CONTENT_STALE:
            return is_content_stale(pair, now, policy)
        case Classification.PRICE_DRIFT:
            return has_price_drift(pair, policy)
        case Classification.NEW_CANDIDATE:
            return is_new_candidate(pair, now, policy)
        case Classification.STALE_UNAVAILABLE:
            return is_stale_unavailable(pair, now)

from __future__ import annotations

from datetime import timedelta

from marketsync.domain.model import Classification
from marketsync.domain.policy import SyncPolicy
from marketsync.domain.reconciliation import ReconciliationEngine
from tests.helpers.catalog import NOW, fixed_clock, make_mirror_item, make_source_item
from tests.helpers.unit_of_work import InMemoryMirrorItemRepository, InMemoryStore


def _repository(store: InMemoryStore) -> InMemoryMirrorItemRepository:
    return InMemoryMirrorItemRepository(store)


def test_page_confirms_superset_and_reports_missing_sources() -> None:
    store = InMemoryStore()
    store.items["A"] = make_source_item("A", quantity=1)
    store.items["B"] = make_source_item("B", quantity=2)
    store.mirrors += [
        make_mirror_item("A", quantity=3),
        make_mirror_item("B", quantity=2),
        make_mirror_item("GONE", quantity=1),
    ]
    engine = ReconciliationEngine(policy=SyncPolicy(), clock=fixed_clock())

    page = engine.page(_repository(store), Classification.OVERSOLD, now=NOW)

    assert [decision.item_id for decision in page.decisions] == ["A"]
    assert page.missing == ("GONE",)
    assert page.next_after is None


def test_iter_matching_walks_every_keyset_page() -> None:
    store = InMemoryStore()
    for index in range(5):
        item_id = f"SC-{index}"
        store.items[item_id] = make_source_item(item_id, quantity=0)
        store.mirrors.append(make_mirror_item(item_id, quantity=1))
    engine = ReconciliationEngine(policy=SyncPolicy(batch_size=2), clock=fixed_clock())

    found = list(engine.iter_matching(_repository(store), Classification.STALE_UNAVAILABLE))

    assert [decision.item_id for decision in found] == [f"SC-{index}" for index in range(5)]


def test_overview_counts_each_classification() -> None:
    store = InMemoryStore()
    store.items["NEW"] = make_source_item("NEW")
    store.items["OVER"] = make_source_item("OVER", quantity=1)
    store.mirrors.append(make_mirror_item("OVER", quantity=2))
    engine = ReconciliationEngine(policy=SyncPolicy(), clock=fixed_clock())

    counts = engine.overview(_repository(store))

    assert counts[Classification.NEW_CANDIDATE] == 1
    assert counts[Classification.OVERSOLD] == 1
    assert counts[Classification.QUANTITY_DRIFT] == 1
    assert counts[Classification.STALE_UNAVAILABLE] == 0


def test_recently_changed_only_lists_fresh_source_edits() -> None:
    store = InMemoryStore()
    store.items["FRESH"] = make_source_item("FRESH", updated=NOW - timedelta(hours=1))
    store.items["OLDER"] = make_source_item("OLDER", updated=NOW - timedelta(hours=20))
    store.mirrors += [
        make_mirror_item("FRESH", updated=NOW - timedelta(days=2)),
        make_mirror_item("OLDER", updated=NOW - timedelta(days=2)),
    ]
    engine = ReconciliationEngine(policy=SyncPolicy(), clock=fixed_clock())

    changed = engine.recently_changed(_repository(store))

    assert [decision.item_id for decision in changed] == ["FRESH"]


def test_stale_out_of_stock_requires_minimum_age() -> None:
    store = InMemoryStore()
    store.items["LONG"] = make_source_item("LONG", quantity=0, updated=NOW - timedelta(days=10))
    store.items["JUST"] = make_source_item("JUST", quantity=0, updated=NOW - timedelta(days=1))
    store.mirrors += [make_mirror_item("LONG"), make_mirror_item("JUST")]
    engine = ReconciliationEngine(policy=SyncPolicy(), clock=fixed_clock())

    stale = engine.stale_out_of_stock(_repository(store))

    assert [decision.item_id for decision in stale] == ["LONG"]

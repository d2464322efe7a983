from __future__ import annotations

from decimal import Decimal

import pytest

from marketsync.domain.errors import MissingCounterpartError
from marketsync.domain.inventory import RemoteInventoryReconciler, mirrored_quantity
from marketsync.domain.model import OutcomeStatus
from marketsync.domain.policy import SyncPolicy
from marketsync.domain.ports.marketplace import MigrationResult, RemoteInventoryItem, RemoteOffer
from tests.helpers.catalog import NOW, fixed_clock, make_mirror_item, make_source_item
from tests.helpers.marketplace import FakeMarketplaceClient
from tests.helpers.unit_of_work import InMemoryStore, InMemoryUnitOfWork


def _reconciler(client: FakeMarketplaceClient) -> RemoteInventoryReconciler:
    return RemoteInventoryReconciler(client=client, policy=SyncPolicy(), clock=fixed_clock())


@pytest.mark.parametrize(("remote", "expected"), [(-4, 0), (0, 0), (2, 2), (40, 3)])
def test_mirrored_quantity_is_clamped(remote: int, expected: int) -> None:
    assert mirrored_quantity(remote) == expected


def test_adopt_creates_mirror_for_published_offer() -> None:
    store = InMemoryStore()
    store.items["SC-1001"] = make_source_item()
    client = FakeMarketplaceClient(
        offers={
            "SC-1001": [
                RemoteOffer(
                    offer_id="O-5",
                    sku="SC-1001",
                    listing_id="1109",
                    price=Decimal("14.50"),
                )
            ]
        }
    )

    with InMemoryUnitOfWork(store) as uow:
        status = _reconciler(client).adopt(RemoteInventoryItem("SC-1001", 7), uow.repositories)

    assert status is OutcomeStatus.SUCCEEDED
    mirror = store.live_mirror("SC-1001")
    assert mirror is not None
    assert (mirror.listing_id, mirror.quantity, mirror.price) == ("1109", 3, Decimal("14.50"))


def test_adopt_refreshes_quantity_of_existing_mirror() -> None:
    store = InMemoryStore()
    store.items["SC-1001"] = make_source_item()
    store.mirrors.append(make_mirror_item(quantity=3))

    with InMemoryUnitOfWork(store) as uow:
        reconciler = _reconciler(FakeMarketplaceClient())
        changed = reconciler.adopt(RemoteInventoryItem("SC-1001", 1), uow.repositories)
        unchanged = reconciler.adopt(RemoteInventoryItem("SC-1001", 1), uow.repositories)

    assert (changed, unchanged) == (OutcomeStatus.SUCCEEDED, OutcomeStatus.UNCHANGED)
    assert store.mirrors[0].quantity == 1


def test_adopt_without_published_offer_is_skipped() -> None:
    store = InMemoryStore()
    store.items["SC-1001"] = make_source_item()

    with InMemoryUnitOfWork(store) as uow:
        status = _reconciler(FakeMarketplaceClient()).adopt(
            RemoteInventoryItem("SC-1001", 2), uow.repositories
        )

    assert status is OutcomeStatus.SKIPPED
    assert store.mirrors == []


def test_adopt_unknown_sku_reports_missing_counterpart() -> None:
    with InMemoryUnitOfWork(InMemoryStore()) as uow, pytest.raises(MissingCounterpartError):
        _reconciler(FakeMarketplaceClient()).adopt(RemoteInventoryItem("NOPE", 1), uow.repositories)


def test_record_migration_starts_at_zero_quantity() -> None:
    store = InMemoryStore()
    store.items["SC-1001"] = make_source_item()
    result = MigrationResult(listing_id="2201", succeeded=True, sku="SC-1001", offer_id="O-7")

    with InMemoryUnitOfWork(store) as uow:
        status = _reconciler(FakeMarketplaceClient()).record_migration(result, uow.repositories)

    assert status is OutcomeStatus.SUCCEEDED
    mirror = store.live_mirror("SC-1001")
    assert mirror is not None
    assert (mirror.listing_id, mirror.offer_id, mirror.quantity) == ("2201", "O-7", 0)
    assert mirror.created == NOW

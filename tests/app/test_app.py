from __future__ import annotations

import pytest

from marketsync import app
from marketsync.adapters.sqlalchemy.unit_of_work import StartupError
from marketsync.config import ConfigurationError
from marketsync.domain.policy import SyncPolicy
from marketsync.domain.sync_service import SyncService
from tests.helpers.marketplace import FakeListingContent, FakeMarketplaceClient
from tests.helpers.service import RecordingSyncService
from tests.helpers.unit_of_work import InMemoryStore, InMemoryUnitOfWork


@pytest.mark.parametrize(
    ("topic", "expected"),
    [
        ("ITEM_SOLD", "order"),
        ("FIXED_PRICE_TRANSACTION", "order"),
        ("auction_transaction", "order"),
        ("ORDER_PAYMENT_RECEIVED", "order-payment"),
        ("order_cancelled", "order-cancellation"),
    ],
)
def test_notifications_route_to_single_order_paths(topic: str, expected: str) -> None:
    service = RecordingSyncService()

    report = app.handle_marketplace_notification(
        topic,
        "07-12345-67890",
        service=service,  # type: ignore[arg-type]
    )

    assert report is not None
    assert service.calls == [(expected, "07-12345-67890")]


@pytest.mark.parametrize("topic", ["ITEM_MARKED_SHIPPED", "ITEM_CLOSED", "FEEDBACK_LEFT"])
def test_notifications_without_action_return_none(topic: str) -> None:
    service = RecordingSyncService()

    report = app.handle_marketplace_notification(
        topic,
        "07-12345-67890",
        service=service,  # type: ignore[arg-type]
    )

    assert report is None
    assert service.calls == []


def test_build_sync_service_accepts_explicit_collaborators() -> None:
    store = InMemoryStore()

    service = app.build_sync_service(
        client=FakeMarketplaceClient(),
        content=FakeListingContent(),
        unit_of_work_factory=lambda: InMemoryUnitOfWork(store),
        policy=SyncPolicy(batch_size=10),
    )

    assert isinstance(service, SyncService)
    assert service.engine.policy.batch_size == 10


def test_start_database_wraps_startup_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_startup(*, database_uri: str | None = None) -> None:
        raise StartupError(f"cannot open {database_uri}")

    monkeypatch.setattr(app, "is_started", lambda: False)
    monkeypatch.setattr(app, "startup", failing_startup)

    with pytest.raises(ConfigurationError, match="Database startup failed"):
        app.start_database("sqlite:///nowhere.db")

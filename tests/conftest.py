from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from marketsync.adapters.sqlalchemy import start_mappers
from marketsync.adapters.sqlalchemy.migrations import upgrade_head
from marketsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from marketsync.domain.policy import SyncPolicy
from marketsync.domain.sync_service import SyncService
from tests.helpers.catalog import fixed_clock
from tests.helpers.marketplace import FakeListingContent, FakeMarketplaceClient
from tests.helpers.unit_of_work import InMemoryStore, InMemoryUnitOfWork

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def policy() -> SyncPolicy:
    return SyncPolicy()


@pytest.fixture
def marketplace() -> FakeMarketplaceClient:
    return FakeMarketplaceClient()


@pytest.fixture
def content() -> FakeListingContent:
    return FakeListingContent()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def sync_service(
    marketplace: FakeMarketplaceClient,
    content: FakeListingContent,
    store: InMemoryStore,
    policy: SyncPolicy,
) -> SyncService:
    sleeps: list[float] = []
    return SyncService(
        client=marketplace,
        content=content,
        unit_of_work_factory=lambda: InMemoryUnitOfWork(store),
        policy=policy,
        clock=fixed_clock(),
        sleep=sleeps.append,
    )

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from marketsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from tests.helpers.catalog import make_mirror_item, make_source_item

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def closed_database() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_needs_started_database() -> None:
    assert not is_started()

    with pytest.raises(StartupError, match="startup"):
        SqlAlchemyUnitOfWork()


def test_startup_migrates_and_refuses_silent_replacement() -> None:
    first = create_engine("sqlite+pysqlite:///:memory:", future=True)
    second = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=first)

    assert configured_engine() is first
    tables = set(inspect(first).get_table_names())
    assert {"source_item", "mirror_item", "customer", "sync_checkpoint"} <= tables
    with pytest.raises(StartupError, match="force=True"):
        startup(engine=second)

    startup(engine=second, force=True)
    assert configured_engine() is second


def test_startup_from_database_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    startup()

    engine = configured_engine()
    assert engine is not None
    assert engine.url.database == ":memory:"


def test_committed_item_and_mirror_are_visible_to_next_unit(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.items.add(make_source_item("SC-7", quantity=5))
        uow.repositories.mirror_items.add(make_mirror_item("SC-7", quantity=3))
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        pair = uow.repositories.mirror_items.get_pair("SC-7")

    assert pair is not None
    assert pair.source is not None
    assert pair.source.quantity == 5
    assert pair.mirror is not None
    assert pair.mirror.quantity == 3


def test_failed_item_rolls_back_its_unit(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError, match="remote call failed"), SqlAlchemyUnitOfWork() as uow:
        uow.repositories.items.add(make_source_item("SC-8"))
        uow.session.flush()
        raise RuntimeError("remote call failed")

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.items.get("SC-8") is None


def test_unit_of_work_is_unusable_outside_its_context(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyUnitOfWork()

    with pytest.raises(StartupError, match="outside its context"):
        _ = uow.repositories
    with uow:
        pass
    with pytest.raises(StartupError, match="outside its context"):
        uow.commit()

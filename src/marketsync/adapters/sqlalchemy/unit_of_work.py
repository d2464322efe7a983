"""Process-wide database handle and the per-item SQLAlchemy unit of work."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from marketsync.adapters.sqlalchemy.mappings import start_mappers
from marketsync.adapters.sqlalchemy.migrations import upgrade_head
from marketsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyCheckpointRepository,
    SqlAlchemyCustomerRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyMirrorItemRepository,
    SqlAlchemySourceItemRepository,
    SqlAlchemyTransactionRepository,
)
from marketsync.config import get_database_config
from marketsync.domain.ports.unit_of_work import SyncRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """The database handle is missing, already open, or a session is misused."""


@dataclass(slots=True)
class _Database:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def open(self, engine: Engine) -> None:
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.sessions = None

    def session_factory(self) -> sessionmaker[Session]:
        if self.sessions is None:
            raise StartupError(
                "Database not started. Call marketsync.adapters.sqlalchemy.unit_of_work."
                "startup() before opening a unit of work."
            )
        return self.sessions


_DATABASE = _Database()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Open the database, upgrade its schema to head and prepare sessions.

    An already open database is only replaced when ``force`` is set.
    """

    if _DATABASE.engine is not None and not force:
        raise StartupError("Database already started. Pass force=True to reconfigure.")

    if engine is None:
        database = get_database_config()
        engine = create_engine(database_uri or database.uri, echo=database.echo, future=True)
    start_mappers()
    upgrade_head(engine=engine)
    _DATABASE.open(engine)
    log.debug("Database ready at %s", engine.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _DATABASE.engine


def is_started() -> bool:
    return _DATABASE.engine is not None


def shutdown() -> None:
    """Dispose the engine; the next unit of work needs a fresh ``startup()``."""

    _DATABASE.close()


class SqlAlchemyUnitOfWork:
    """One session and transaction around the sync repositories.

    Leaving the context after an exception rolls back; nothing is committed
    without an explicit ``commit()``.
    """

    def __init__(self) -> None:
        self._sessions = _DATABASE.session_factory()
        self._session: Session | None = None
        self._repositories: SyncRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work already entered")
        session = self._sessions()
        self._session = session
        self._repositories = SyncRepositories(
            items=SqlAlchemySourceItemRepository(session),
            mirror_items=SqlAlchemyMirrorItemRepository(session),
            customers=SqlAlchemyCustomerRepository(session),
            invoices=SqlAlchemyInvoiceRepository(session),
            transactions=SqlAlchemyTransactionRepository(session),
            checkpoints=SqlAlchemyCheckpointRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> SyncRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work used outside its context")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside its context")
        return self._session


if TYPE_CHECKING:
    from marketsync.domain.ports.unit_of_work import SyncUnitOfWork

    _uow_check: SyncUnitOfWork = SqlAlchemyUnitOfWork()

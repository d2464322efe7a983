"""SQLAlchemy adapter package for marketsync."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCheckpointRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyMirrorItemRepository,
    SqlAlchemySourceItemRepository,
    SqlAlchemyTransactionRepository,
)
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyCheckpointRepository",
    "SqlAlchemyInvoiceRepository",
    "SqlAlchemyMirrorItemRepository",
    "SqlAlchemySourceItemRepository",
    "SqlAlchemyTransactionRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "configured_engine",
    "mapper_registry",
    "shutdown",
    "startup",
]

"""Alembic environment for the marketsync schema.

``upgrade_head`` hands in an open connection; the alembic CLI falls back to
``sqlalchemy.url`` or the configured database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from marketsync.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from marketsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

start_mappers()

config = context.config
target_metadata = mapper_registry.metadata

# batch mode keeps ALTERs working on sqlite
OPTIONS = {"target_metadata": target_metadata, "render_as_batch": True, "compare_type": True}


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url") or get_database_config().uri
    context.configure(url=url, literal_binds=True, **OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connection: Connection | None = config.attributes.get("connection")
    if connection is not None:
        _migrate(connection)
        return

    url = config.get_main_option("sqlalchemy.url") or get_database_config().uri
    engine = create_engine(url, poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as fresh:
            _migrate(fresh)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

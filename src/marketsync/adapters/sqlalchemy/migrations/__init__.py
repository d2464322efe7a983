"""Schema migrations shipped with the package."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from marketsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
HEAD: Final[str] = "head"


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the schema to the newest revision.

    With an ``engine`` the upgrade shares one transaction on its connection,
    which keeps in-memory sqlite databases intact.
    """

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if engine is None:
        config.set_main_option("sqlalchemy.url", database_uri or get_database_config().uri)
        command.upgrade(config, HEAD)
        return
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, HEAD)

"""Root logger setup for the CLI and cron runs."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Libraries that log every request or revision at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "hishel", "alembic.runtime.migration")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger once; ``force=True`` replaces existing handlers.

    Third-party request logging stays at WARNING unless debug output is asked for.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

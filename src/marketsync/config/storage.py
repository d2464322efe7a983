"""Where the sync database and the HTTP cache live on disk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_bool, optional_env

APP_DIR_NAME: Final[str] = "marketsync"
DEFAULT_DB_FILENAME: Final[str] = "marketsync.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def file_path(self, filename: str, *, ensure: bool = True) -> Path:
        """Path of ``filename`` inside the data dir, creating the dir unless ``ensure`` is off."""

        base = self.resolve_data_dir()
        if ensure:
            base.mkdir(parents=True, exist_ok=True)
        return base / filename

    def http_cache_path(self, *, ensure: bool = True) -> Path:
        return self.file_path(HTTP_CACHE_FILENAME, ensure=ensure)

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.file_path(DEFAULT_DB_FILENAME)}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def _default_data_dir() -> Path:
    # XDG on POSIX, LOCALAPPDATA on Windows
    if os.name == "nt":
        root = optional_env("LOCALAPPDATA")
        fallback = Path.home() / "AppData" / "Local"
    else:
        root = optional_env("XDG_DATA_HOME")
        fallback = Path.home() / ".local" / "share"
    return (Path(root) if root else fallback) / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    data_dir = optional_env("MARKETSYNC_DATA_DIR")
    return StorageConfig(data_dir=Path(data_dir) if data_dir else _default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a sqlite file in the data dir."""

    uri = optional_env("DATABASE_URI") or (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=uri, echo=env_bool("DATABASE_ECHO"))

"""Where groupsync keeps its data and how it connects to the database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_flag

APP_DIR_NAME: Final[str] = "groupsync"
DEFAULT_DB_FILENAME: Final[str] = "groupsync.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory, used when no ``DATABASE_URI`` is given."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self, *, create_dir: bool = True) -> Path:
        directory = self.data_dir.expanduser().resolve()
        if create_dir:
            directory.mkdir(parents=True, exist_ok=True)
        return directory / self.database_filename

    def sqlite_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Connection settings for the membership store.

    ``isolation_level`` is handed to SQLAlchemy as is (``SERIALIZABLE``,
    ``REPEATABLE READ``, ...); ``None`` keeps the driver default.
    """

    uri: str
    isolation_level: str | None = None
    echo: bool = False


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    override = os.getenv("GROUPSYNC_DATA_DIR")
    data_dir = Path(override) if override else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise an SQLite file in the data directory."""

    uri = os.getenv("DATABASE_URI") or (storage or get_storage_config()).sqlite_uri()
    isolation_level = os.getenv("GROUPSYNC_DB_ISOLATION_LEVEL", "").strip().upper() or None
    return DatabaseConfig(
        uri=uri,
        isolation_level=isolation_level,
        echo=env_flag("GROUPSYNC_DB_ECHO", default=False),
    )

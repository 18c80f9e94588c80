"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_int
from .errors import ConfigurationError
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import DEFAULT_COMMIT_ATTEMPTS, SyncConfig, get_sync_config

__all__ = [
    "DEFAULT_COMMIT_ATTEMPTS",
    "ConfigurationError",
    "DatabaseConfig",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "env_flag",
    "env_int",
    "get_database_config",
    "get_storage_config",
    "get_sync_config",
]

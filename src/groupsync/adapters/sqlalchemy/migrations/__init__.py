"""Programmatic Alembic entry points for the groupsync schema.

groupsync usually shares a database with the platform that owns users and
organizations, so its revision history lives in its own version table.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.migration import MigrationContext

from groupsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[5]
PYPROJECT_PATH: Final[Path] = PROJECT_ROOT / "pyproject.toml"
MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
VERSION_TABLE: Final[str] = "groupsync_alembic_version"


def _tool_options() -> dict[str, str]:
    # Only present in a source checkout; installed wheels fall back to defaults.
    if not PYPROJECT_PATH.is_file():
        return {}
    with PYPROJECT_PATH.open("rb") as handle:
        section = tomllib.load(handle).get("tool", {}).get("alembic", {})
    return {str(key): str(value) for key, value in section.items()}


def _script_location(options: dict[str, str]) -> Path:
    configured = options.get("script_location")
    if configured is None:
        return MIGRATIONS_PATH
    candidate = Path(configured)
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    return candidate if candidate.is_dir() else MIGRATIONS_PATH


def alembic_config(*, database_uri: str | None = None) -> Config:
    """Build an Alembic ``Config`` without an ini file."""

    options = _tool_options()
    config = Config()
    config.set_main_option("script_location", str(_script_location(options)))
    config.set_main_option("version_table", options.get("version_table", VERSION_TABLE))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Migrate the schema to the latest revision.

    With an ``engine`` the upgrade runs in one of its transactions; otherwise
    ``env.py`` connects to ``database_uri`` or the configured database.
    """

    if engine is None:
        command.upgrade(
            alembic_config(database_uri=database_uri or get_database_config().uri), "head"
        )
        return
    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")


def current_revision(engine: Engine) -> str | None:
    """Return the revision the database is at, ``None`` before the first upgrade."""

    version_table = alembic_config().get_main_option("version_table") or VERSION_TABLE
    with engine.connect() as connection:
        context = MigrationContext.configure(
            connection, opts={"version_table": version_table}
        )
        return context.get_current_revision()

"""Alembic environment for the groupsync schema."""

from __future__ import annotations

from logging.config import fileConfig
from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from groupsync.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from groupsync.adapters.sqlalchemy.migrations import VERSION_TABLE
from groupsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config

# Programmatic upgrades pass no ini file and keep the caller's logging setup.
if config.config_file_name is not None and config.config_file_name.endswith(".ini"):
    fileConfig(config.config_file_name)

start_mappers()

target_metadata = mapper_registry.metadata
version_table = config.get_main_option("version_table") or VERSION_TABLE


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _run_on(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        version_table=version_table,
        render_as_batch=connection.dialect.name == "sqlite",
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit SQL for the pending revisions without connecting."""

    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        version_table=version_table,
        literal_binds=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply pending revisions, reusing the caller's connection when given."""

    shared = config.attributes.get("connection")
    if shared is not None:
        _run_on(shared)
        return

    engine = create_engine(_database_url(), poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as connection:
            _run_on(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

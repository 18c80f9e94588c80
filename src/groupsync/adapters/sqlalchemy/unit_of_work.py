"""SQLAlchemy-backed unit of work for group synchronization.

One unit of work is one database transaction. The adapter keeps a single
engine and session factory per process; ``startup`` installs them and runs
pending migrations, ``shutdown`` disposes them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from groupsync.adapters.sqlalchemy.mappings import start_mappers
from groupsync.adapters.sqlalchemy.migrations import upgrade_head
from groupsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyGroupRepository,
    SqlAlchemyGroupSyncSettingsRepository,
    SqlAlchemyMembershipRepository,
    SqlAlchemyOrganizationRepository,
    SqlAlchemyUserRepository,
)
from groupsync.config import DatabaseConfig, get_database_config
from groupsync.domain.errors import CommitError, ConstraintViolationError
from groupsync.domain.ports.unit_of_work import GroupSyncRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine
    from sqlalchemy.pool import ConnectionPoolEntry


class StartupError(RuntimeError):
    """Raised when the adapter is used before ``startup`` or configured twice."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None

    def install(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def reset(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.session_factory = None

    def open_session(self) -> Session:
        if self.session_factory is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call groupsync.adapters.sqlalchemy."
                "unit_of_work.startup() before opening a unit of work."
            )
        return self.session_factory()


_STATE = _AdapterState()


def enable_sqlite_foreign_keys(dbapi_connection: object, _record: ConnectionPoolEntry) -> None:
    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_engine(database: DatabaseConfig) -> Engine:
    options: dict[str, object] = {"future": True, "echo": database.echo}
    if database.isolation_level is not None:
        options["isolation_level"] = database.isolation_level
    engine = create_engine(database.uri, **options)
    if engine.dialect.name == "sqlite":
        # Membership rows cascade with their group and user.
        event.listen(engine, "connect", enable_sqlite_foreign_keys)
    return engine


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    isolation_level: str | None = None,
    force: bool = False,
) -> None:
    """Install the engine and session factory, migrating the schema to head.

    A caller-supplied ``engine`` is used as is; otherwise one is created from
    ``database_uri`` or the database config. ``isolation_level`` (for example
    ``"SERIALIZABLE"``) overrides ``GROUPSYNC_DB_ISOLATION_LEVEL`` and only
    applies to engines created here.
    """

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        database = get_database_config() if database_uri is None else DatabaseConfig(database_uri)
        if isolation_level is not None:
            database = replace(database, isolation_level=isolation_level)
        engine = _create_engine(database)

    start_mappers()
    upgrade_head(engine=engine)
    if _STATE.engine is not None and _STATE.engine is not engine:
        _STATE.engine.dispose()
    _STATE.install(engine)


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    _STATE.reset()


class SqlAlchemyGroupSyncUnitOfWork:
    """One transaction around the repositories a group sync needs.

    Leaving the ``with`` block through an exception rolls back. Leaving it
    normally without ``commit`` discards pending changes when the session
    closes.
    """

    def __init__(self) -> None:
        if _STATE.session_factory is None:
            raise StartupError("SQLAlchemy adapter not initialised")
        self._session: Session | None = None
        self._repositories: GroupSyncRepositories | None = None

    def __enter__(self) -> SqlAlchemyGroupSyncUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        session = _STATE.open_session()
        self._session = session
        self._repositories = GroupSyncRepositories(
            groups=SqlAlchemyGroupRepository(session),
            memberships=SqlAlchemyMembershipRepository(session),
            settings=SqlAlchemyGroupSyncSettingsRepository(session),
            organizations=SqlAlchemyOrganizationRepository(session),
            users=SqlAlchemyUserRepository(session),
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

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @property
    def repositories(self) -> GroupSyncRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    def commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConstraintViolationError(f"commit violates a constraint: {exc}") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise CommitError(f"commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from groupsync.domain.ports.unit_of_work import GroupSyncUnitOfWork

    _uow_check: GroupSyncUnitOfWork = SqlAlchemyGroupSyncUnitOfWork()

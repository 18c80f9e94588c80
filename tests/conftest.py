from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session

from groupsync.adapters.sqlalchemy import start_mappers
from groupsync.adapters.sqlalchemy.migrations import upgrade_head
from groupsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyGroupSyncUnitOfWork,
    enable_sqlite_foreign_keys,
    shutdown,
    startup,
)

# Nothing under test may fall back to the on-disk default database.
os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine

    UnitOfWorkFactory = Callable[[], SqlAlchemyGroupSyncUnitOfWork]


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    """In-memory database migrated to head; one connection shared per thread."""

    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    start_mappers()
    upgrade_head(engine=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    with Session(sqlite_engine) as session:
        yield session


@pytest.fixture
def sqlite_unit_of_work(sqlite_engine: Engine) -> Iterator[UnitOfWorkFactory]:
    startup(engine=sqlite_engine, force=True)
    yield SqlAlchemyGroupSyncUnitOfWork
    shutdown()

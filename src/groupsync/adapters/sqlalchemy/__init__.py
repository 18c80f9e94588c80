"""SQLAlchemy adapter package for groupsync."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyGroupRepository,
    SqlAlchemyGroupSyncSettingsRepository,
    SqlAlchemyMembershipRepository,
    SqlAlchemyOrganizationRepository,
    SqlAlchemyUserRepository,
)
from .unit_of_work import (
    SqlAlchemyGroupSyncUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyGroupRepository",
    "SqlAlchemyGroupSyncSettingsRepository",
    "SqlAlchemyGroupSyncUnitOfWork",
    "SqlAlchemyMembershipRepository",
    "SqlAlchemyOrganizationRepository",
    "SqlAlchemyUserRepository",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]

"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    GroupRepository,
    GroupSyncSettingsRepository,
    GroupSyncSettingsResolver,
    MembershipRepository,
    OrganizationRepository,
    Repository,
    UserGroupRow,
    UserRepository,
)
from .unit_of_work import (
    GroupSyncRepositories,
    GroupSyncUnitOfWork,
)

__all__ = [
    "GroupRepository",
    "GroupSyncRepositories",
    "GroupSyncSettingsRepository",
    "GroupSyncSettingsResolver",
    "GroupSyncUnitOfWork",
    "MembershipRepository",
    "OrganizationRepository",
    "Repository",
    "UserGroupRow",
    "UserRepository",
]

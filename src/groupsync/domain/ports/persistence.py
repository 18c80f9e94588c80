"""Ports for reading and writing group membership."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from groupsync.domain.identity import ExistingGroupRef

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from uuid import UUID

    from groupsync.domain.model import GroupSource, Organization, User
    from groupsync.domain.settings import GroupSyncSettings


@dataclass(frozen=True, slots=True)
class UserGroupRow:
    """One group as seen from a membership query."""

    group_id: UUID
    group_name: str
    organization_id: UUID
    is_everyone: bool = False

    def as_identity(self) -> ExistingGroupRef:
        return ExistingGroupRef(group_id=self.group_id, group_name=self.group_name)


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class GroupRepository(Protocol):
    """Persistence contract for groups."""

    def groups_for_member(self, user_id: UUID) -> Sequence[UserGroupRow]: ...

    def insert_missing_groups(
        self,
        organization_id: UUID,
        names: Collection[str],
        *,
        source: GroupSource,
    ) -> Sequence[UserGroupRow]:
        """Create the named groups; names that already exist return their row."""
        ...


@runtime_checkable
class MembershipRepository(Protocol):
    """Persistence contract for a user's group memberships."""

    def set_user_groups(
        self,
        user_id: UUID,
        *,
        add: Collection[UUID],
        remove: Collection[UUID],
    ) -> None:
        """Apply both sets in one step; groups in ``add`` that no longer exist are skipped."""
        ...


@runtime_checkable
class GroupSyncSettingsResolver(Protocol):
    """Loads the group sync policy of one organization."""

    def resolve(self, organization_id: UUID) -> GroupSyncSettings: ...


@runtime_checkable
class GroupSyncSettingsRepository(GroupSyncSettingsResolver, Protocol):
    def save(self, organization_id: UUID, settings: GroupSyncSettings) -> None: ...


@runtime_checkable
class OrganizationRepository(Repository["Organization"], Protocol):
    def get(self, organization_id: UUID) -> Organization | None: ...


@runtime_checkable
class UserRepository(Repository["User"], Protocol):
    def get(self, user_id: UUID) -> User | None: ...

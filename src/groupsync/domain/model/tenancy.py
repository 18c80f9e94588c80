"""Organizations, users and groups as stored by the platform."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from groupsync.domain.model.entity import Entity
from groupsync.domain.model.enums import GroupSource

if TYPE_CHECKING:
    from uuid import UUID

EVERYONE_GROUP_NAME: Final[str] = "Everyone"


def everyone_group_id(organization_id: UUID) -> UUID:
    """The built-in group of an organization shares the organization's ID."""
    return organization_id


@dataclass(eq=False, kw_only=True)
class Organization(Entity):
    name: str

    @property
    def everyone_group_id(self) -> UUID:
        return everyone_group_id(self.id)

    def create_everyone_group(self) -> Group:
        return Group(
            id=self.everyone_group_id,
            organization_id=self.id,
            name=EVERYONE_GROUP_NAME,
        )

    def create_group(self, name: str, *, source: GroupSource = GroupSource.USER) -> Group:
        if not name:
            raise ValueError("Group name must not be empty")
        return Group(organization_id=self.id, name=name, source=source)


@dataclass(eq=False, kw_only=True)
class Group(Entity):
    organization_id: UUID
    name: str
    source: GroupSource = GroupSource.USER

    @property
    def is_everyone(self) -> bool:
        return self.id == everyone_group_id(self.organization_id)


@dataclass(eq=False, kw_only=True)
class User(Entity):
    username: str
    email: str | None = None


@dataclass(eq=False, kw_only=True)
class GroupMember:
    """Membership row linking one user to one group."""

    user_id: UUID
    group_id: UUID

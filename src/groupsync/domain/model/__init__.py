"""Public domain model surface."""

from __future__ import annotations

from groupsync.domain.model.entity import Entity, new_id
from groupsync.domain.model.enums import GroupSource, SettingKey
from groupsync.domain.model.tenancy import (
    EVERYONE_GROUP_NAME,
    Group,
    GroupMember,
    Organization,
    User,
    everyone_group_id,
)

__all__ = [
    "EVERYONE_GROUP_NAME",
    "Entity",
    "Group",
    "GroupMember",
    "GroupSource",
    "Organization",
    "SettingKey",
    "User",
    "everyone_group_id",
    "new_id",
]

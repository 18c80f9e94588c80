"""Group identities compared during a sync.

An expected group is known either by its stable ID (configured mappings,
the everyone group) or only by name (raw IDP values). Existing groups always
carry both. Renaming a group must not break an ID mapping, so comparisons
prefer the ID and only fall back to the name when one side has no ID.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class GroupIdRef:
    """Expected group resolved to a stable ID."""

    group_id: UUID

    @property
    def group_name(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class GroupNameRef:
    """Expected group known only by name; may not exist yet."""

    group_name: str

    def __post_init__(self) -> None:
        if not self.group_name:
            raise ValueError("GroupNameRef requires a non-empty name")

    @property
    def group_id(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class ExistingGroupRef:
    """Group the user is currently a member of."""

    group_id: UUID
    group_name: str


type ExpectedGroup = GroupIdRef | GroupNameRef
type GroupIdentity = GroupIdRef | GroupNameRef | ExistingGroupRef


def same_group(left: GroupIdentity, right: GroupIdentity) -> bool:
    """Three-way equality: IDs when both have one, else names, else unequal."""

    if left.group_id is not None and right.group_id is not None:
        return left.group_id == right.group_id
    if left.group_name is not None and right.group_name is not None:
        return left.group_name == right.group_name
    return False

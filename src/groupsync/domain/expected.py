"""Expected-group calculation for one organization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from groupsync.domain.identity import ExpectedGroup, GroupIdRef, GroupNameRef
from groupsync.domain.model import everyone_group_id

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from groupsync.domain.settings import GroupSyncSettings


@dataclass(frozen=True, slots=True)
class ExpectedGroups:
    """Groups a user should be in for one organization.

    ``sync_enabled`` is false when the organization has no group field
    configured; callers must then leave the organization's membership alone.
    """

    identities: frozenset[ExpectedGroup]
    sync_enabled: bool = True


def compute_expected_groups(
    claim_values: Iterable[str],
    settings: GroupSyncSettings,
    organization_id: UUID,
) -> ExpectedGroups:
    if not settings.sync_enabled:
        return ExpectedGroups(identities=frozenset(), sync_enabled=False)

    expected: set[ExpectedGroup] = set()
    for value in claim_values:
        # Empty claim values are skipped, never turned into a group named "".
        if not value or not settings.accepts(value):
            continue
        mapped_ids = settings.group_mapping.get(value)
        if mapped_ids is not None:
            expected.update(GroupIdRef(group_id) for group_id in mapped_ids)
            continue
        expected.add(GroupNameRef(value))

    # Every member stays in the organization's built-in group.
    expected.add(GroupIdRef(everyone_group_id(organization_id)))
    return ExpectedGroups(identities=frozenset(expected))

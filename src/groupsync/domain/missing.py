"""Turning expected groups into group IDs, creating missing groups if allowed."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from groupsync.domain.errors import GroupCreationError
from groupsync.domain.identity import GroupIdRef, GroupNameRef
from groupsync.domain.model import GroupSource

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from groupsync.domain.identity import ExpectedGroup
    from groupsync.domain.ports.persistence import GroupRepository

log = getLogger(__name__)


def resolve_missing_groups(
    to_add: Iterable[ExpectedGroup],
    *,
    organization_id: UUID,
    auto_create: bool,
    groups: GroupRepository,
) -> frozenset[UUID]:
    """Return the IDs of every group in ``to_add``.

    Name-only entries refer to groups that do not exist in the organization.
    They are dropped unless ``auto_create`` is set, in which case they are
    created with source ``oidc``.
    """

    add_ids: set[UUID] = set()
    missing_names: list[str] = []
    for expected in to_add:
        match expected:
            case GroupIdRef(group_id=group_id):
                add_ids.add(group_id)
            case GroupNameRef(group_name=name):
                missing_names.append(name)

    if not missing_names:
        return frozenset(add_ids)

    names = tuple(sorted(set(missing_names)))
    if not auto_create:
        log.debug(
            "Dropping %d unknown group(s) for organization %s: %s",
            len(names),
            organization_id,
            ", ".join(names),
        )
        return frozenset(add_ids)

    created = groups.insert_missing_groups(organization_id, names, source=GroupSource.OIDC)
    if len(created) != len(names):
        raise GroupCreationError(
            organization_id,
            names,
            f"expected {len(names)} group(s), store returned {len(created)}",
        )
    log.info("Created %d missing group(s) for organization %s", len(created), organization_id)
    add_ids.update(row.group_id for row in created)
    return frozenset(add_ids)

"""Plan fragments produced per organization and the folded sync plan."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from functools import reduce
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID


class SkipReason(StrEnum):
    SYNC_DISABLED = "sync_disabled"
    INVALID_CLAIMS = "invalid_claims"


@dataclass(frozen=True, slots=True, kw_only=True)
class OrganizationPlan:
    """Membership changes for one organization."""

    organization_id: UUID
    add_group_ids: frozenset[UUID] = frozenset()
    remove_group_ids: frozenset[UUID] = frozenset()


@dataclass(frozen=True, slots=True, kw_only=True)
class SkippedOrganization:
    """Organization whose membership was left untouched."""

    organization_id: UUID
    reason: SkipReason
    detail: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncPlan:
    """Aggregate changes for one invocation; group IDs are globally unique."""

    add_group_ids: frozenset[UUID] = frozenset()
    remove_group_ids: frozenset[UUID] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.add_group_ids and not self.remove_group_ids

    def merge(self, fragment: OrganizationPlan) -> SyncPlan:
        return SyncPlan(
            add_group_ids=self.add_group_ids | fragment.add_group_ids,
            remove_group_ids=self.remove_group_ids | fragment.remove_group_ids,
        )

    @classmethod
    def fold(cls, fragments: Iterable[OrganizationPlan]) -> SyncPlan:
        return reduce(cls.merge, fragments, cls())

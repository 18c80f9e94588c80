"""Orchestrates a group sync for one user across all of their organizations.

Stages, all inside one unit of work:
1) load the user's current groups and bucket them by organization
2) resolve each organization's sync policy (any failure aborts)
3) compute expected groups and diff against current membership
   (claim errors skip only the affected organization)
4) turn expected groups into IDs, creating missing groups if allowed
5) fold the per-organization fragments and apply them in one commit
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from groupsync.domain.claims import extract_claim_values
from groupsync.domain.diff import MembershipDiff, diff_memberships
from groupsync.domain.errors import ClaimParseError, GroupSyncError, PolicyResolutionError
from groupsync.domain.expected import compute_expected_groups
from groupsync.domain.missing import resolve_missing_groups
from groupsync.domain.model import everyone_group_id
from groupsync.domain.plan import OrganizationPlan, SkippedOrganization, SkipReason, SyncPlan

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from uuid import UUID

    from groupsync.domain.claims import GroupSyncParams, MergedClaims
    from groupsync.domain.identity import ExpectedGroup
    from groupsync.domain.ports.persistence import (
        GroupRepository,
        GroupSyncSettingsResolver,
        UserGroupRow,
    )
    from groupsync.domain.ports.unit_of_work import GroupSyncUnitOfWork
    from groupsync.domain.settings import GroupSyncSettings

log = getLogger(__name__)


class SyncState(StrEnum):
    IDLE = "idle"
    LOADED_MEMBERSHIP = "loaded_membership"
    POLICY_RESOLVED = "policy_resolved"
    DIFFED = "diffed"
    MISSING_GROUPS_RESOLVED = "missing_groups_resolved"
    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass(slots=True)
class GroupSyncResult:
    """Outcome of one sync invocation."""

    user_id: UUID
    state: SyncState = SyncState.IDLE
    plan: SyncPlan = field(default_factory=SyncPlan)
    organizations: tuple[OrganizationPlan, ...] = ()
    skipped: tuple[SkippedOrganization, ...] = ()

    @property
    def committed(self) -> bool:
        return self.state is SyncState.COMMITTED

    def advance(self, state: SyncState) -> None:
        log.debug("Group sync for user %s: %s -> %s", self.user_id, self.state, state)
        self.state = state


@dataclass(frozen=True, slots=True)
class _OrganizationDiff:
    organization_id: UUID
    settings: GroupSyncSettings
    diff: MembershipDiff[ExpectedGroup]
    protected_ids: frozenset[UUID]


def sync_user_groups(
    *,
    user_id: UUID,
    params: GroupSyncParams,
    unit_of_work_factory: Callable[[], GroupSyncUnitOfWork],
) -> GroupSyncResult:
    """Bring the user's group memberships in line with their IDP claims.

    Raises a ``GroupSyncError`` subclass on failure, after which nothing is
    written. Only ``CommitError`` is worth replaying.
    """

    result = GroupSyncResult(user_id=user_id)
    if not params.sync_enabled:
        log.debug("Group sync disabled, leaving user %s untouched", user_id)
        result.advance(SyncState.COMMITTED)
        return result

    try:
        with unit_of_work_factory() as uow:
            repositories = uow.repositories
            by_organization = _load_memberships(repositories.groups, user_id)
            result.advance(SyncState.LOADED_MEMBERSHIP)
            if not by_organization:
                log.debug("User %s belongs to no organization, nothing to sync", user_id)
                result.advance(SyncState.COMMITTED)
                return result

            policies = _resolve_policies(repositories.settings, by_organization)
            result.advance(SyncState.POLICY_RESOLVED)

            diffs, skipped = _diff_organizations(by_organization, policies, params.merged_claims)
            result.skipped = skipped
            result.advance(SyncState.DIFFED)

            fragments = tuple(_resolve_organization(diff, repositories.groups) for diff in diffs)
            plan = SyncPlan.fold(fragments)
            result.organizations = fragments
            result.plan = plan
            result.advance(SyncState.MISSING_GROUPS_RESOLVED)

            if not plan.is_empty:
                repositories.memberships.set_user_groups(
                    user_id,
                    add=plan.add_group_ids,
                    remove=plan.remove_group_ids,
                )
                uow.commit()
    except GroupSyncError:
        result.advance(SyncState.ABORTED)
        log.exception("Group sync for user %s aborted", user_id)
        raise

    result.advance(SyncState.COMMITTED)
    log.info(
        "Group sync for user %s committed: +%d -%d across %d organization(s), %d skipped",
        user_id,
        len(result.plan.add_group_ids),
        len(result.plan.remove_group_ids),
        len(result.organizations),
        len(result.skipped),
    )
    return result


def _load_memberships(
    groups: GroupRepository, user_id: UUID
) -> dict[UUID, tuple[UserGroupRow, ...]]:
    buckets: defaultdict[UUID, list[UserGroupRow]] = defaultdict(list)
    for row in groups.groups_for_member(user_id):
        buckets[row.organization_id].append(row)
    return {organization_id: tuple(rows) for organization_id, rows in buckets.items()}


def _resolve_policies(
    resolver: GroupSyncSettingsResolver,
    by_organization: Mapping[UUID, Sequence[UserGroupRow]],
) -> dict[UUID, GroupSyncSettings]:
    policies: dict[UUID, GroupSyncSettings] = {}
    for organization_id in by_organization:
        try:
            policies[organization_id] = resolver.resolve(organization_id)
        except PolicyResolutionError:
            raise
        except Exception as exc:
            raise PolicyResolutionError(organization_id, str(exc)) from exc
    return policies


def _diff_organizations(
    by_organization: Mapping[UUID, Sequence[UserGroupRow]],
    policies: Mapping[UUID, GroupSyncSettings],
    claims: MergedClaims,
) -> tuple[list[_OrganizationDiff], tuple[SkippedOrganization, ...]]:
    diffs: list[_OrganizationDiff] = []
    skipped: list[SkippedOrganization] = []
    for organization_id, rows in by_organization.items():
        settings = policies[organization_id]
        if not settings.sync_enabled:
            skipped.append(
                SkippedOrganization(
                    organization_id=organization_id,
                    reason=SkipReason.SYNC_DISABLED,
                )
            )
            continue

        try:
            values = extract_claim_values(claims, settings.group_field)
        except ClaimParseError as exc:
            log.warning(
                "Skipping group sync for organization %s: cannot parse claim %r: %s",
                organization_id,
                settings.group_field,
                exc,
            )
            skipped.append(
                SkippedOrganization(
                    organization_id=organization_id,
                    reason=SkipReason.INVALID_CLAIMS,
                    detail=str(exc),
                )
            )
            continue

        expected = compute_expected_groups(values, settings, organization_id)
        diff = diff_memberships((row.as_identity() for row in rows), expected.identities)
        protected = {row.group_id for row in rows if row.is_everyone}
        protected.add(everyone_group_id(organization_id))
        diffs.append(
            _OrganizationDiff(
                organization_id=organization_id,
                settings=settings,
                diff=diff,
                protected_ids=frozenset(protected),
            )
        )
    return diffs, tuple(skipped)


def _resolve_organization(entry: _OrganizationDiff, groups: GroupRepository) -> OrganizationPlan:
    add_ids = resolve_missing_groups(
        entry.diff.to_add,
        organization_id=entry.organization_id,
        auto_create=entry.settings.auto_create_missing_groups,
        groups=groups,
    )
    remove_ids = frozenset(
        ref.group_id for ref in entry.diff.to_remove if ref.group_id not in entry.protected_ids
    )
    return OrganizationPlan(
        organization_id=entry.organization_id,
        add_group_ids=add_ids,
        remove_group_ids=remove_ids,
    )

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from groupsync.domain.claims import GroupSyncParams
from groupsync.domain.errors import CommitError, GroupCreationError, PolicyResolutionError
from groupsync.domain.model import GroupSource
from groupsync.domain.plan import SkipReason
from groupsync.domain.sync import SyncState, sync_user_groups
from tests.helpers.groups import FakeUnitOfWorkFactory, InMemoryGroupStore, policy_failure


def _params(**claims: object) -> GroupSyncParams:
    return GroupSyncParams(sync_enabled=True, merged_claims=claims)


def test_two_organizations_disabled_and_mapped() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    org_a = store.add_organization("a")
    org_b = store.add_organization("b")
    a_team = store.add_group(org_a, "team")
    admins = store.add_group(org_b, "Administrators")
    legacy = store.add_group(org_b, "legacy")
    store.add_member(user, a_team, legacy)
    store.configure(org_b, field="groups", mapping={"admins": [str(admins.id)]})
    factory = FakeUnitOfWorkFactory(store)

    result = sync_user_groups(
        user_id=user.id,
        params=_params(groups=["admins", "guests"]),
        unit_of_work_factory=factory,
    )

    assert result.state is SyncState.COMMITTED
    assert result.committed
    assert store.member_group_ids(user) == {a_team.id, admins.id, org_b.everyone_group_id}
    assert result.plan.add_group_ids == {admins.id, org_b.everyone_group_id}
    assert result.plan.remove_group_ids == {legacy.id}
    assert [entry.organization_id for entry in result.skipped] == [org_a.id]
    assert result.skipped[0].reason is SkipReason.SYNC_DISABLED
    assert store.group_named(org_b, "guests") is None


def test_second_run_is_a_no_op() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    organization = store.add_organization()
    store.add_member(user, store.add_group(organization, "stale"))
    store.configure(organization, field="groups", auto_create_missing_groups=True)
    factory = FakeUnitOfWorkFactory(store)
    params = _params(groups=["eng", "ops"])

    first = sync_user_groups(user_id=user.id, params=params, unit_of_work_factory=factory)
    after_first = store.member_group_ids(user)
    second = sync_user_groups(user_id=user.id, params=params, unit_of_work_factory=factory)

    assert not first.plan.is_empty
    assert second.plan.is_empty
    assert second.state is SyncState.COMMITTED
    assert store.member_group_ids(user) == after_first
    assert store.member_group_names(user, organization) == {"Everyone", "eng", "ops"}
    assert factory.last.repositories.memberships.calls == []
    assert store.commits == 1


def test_auto_created_groups_are_marked_oidc() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    organization = store.add_organization()
    store.add_member(user, store.add_group(organization, "existing"))
    store.configure(organization, field="groups", auto_create_missing_groups=True)

    sync_user_groups(
        user_id=user.id,
        params=_params(groups=["existing", "fresh"]),
        unit_of_work_factory=FakeUnitOfWorkFactory(store),
    )

    fresh = store.group_named(organization, "fresh")
    existing = store.group_named(organization, "existing")
    assert fresh is not None
    assert fresh.source is GroupSource.OIDC
    assert existing is not None
    assert existing.source is GroupSource.USER


def test_everyone_group_is_never_removed() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    organization = store.add_organization()
    everyone = store.state.groups[organization.everyone_group_id]
    store.add_member(user, everyone)
    store.configure(organization, field="groups", regex_filter="^nothing-matches$")

    result = sync_user_groups(
        user_id=user.id,
        params=_params(groups=["eng"]),
        unit_of_work_factory=FakeUnitOfWorkFactory(store),
    )

    assert result.plan.is_empty
    assert store.member_group_ids(user) == {everyone.id}


def test_invalid_claim_skips_only_that_organization(caplog: pytest.LogCaptureFixture) -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    broken = store.add_organization("broken")
    healthy = store.add_organization("healthy")
    broken_group = store.add_group(broken, "old")
    healthy_group = store.add_group(healthy, "old")
    store.add_member(user, broken_group, healthy_group)
    store.configure(broken, field="roles")
    store.configure(healthy, field="groups")

    with caplog.at_level(logging.WARNING, logger="groupsync.domain.sync"):
        result = sync_user_groups(
            user_id=user.id,
            params=_params(roles="a,b", groups=[]),
            unit_of_work_factory=FakeUnitOfWorkFactory(store),
        )

    assert result.committed
    assert [entry.reason for entry in result.skipped] == [SkipReason.INVALID_CLAIMS]
    assert result.skipped[0].organization_id == broken.id
    assert result.skipped[0].detail is not None
    assert "csv string" in result.skipped[0].detail
    assert store.member_group_ids(user) == {broken_group.id, healthy.everyone_group_id}
    assert "cannot parse claim" in caplog.text


def test_policy_failure_aborts_without_writes() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    first = store.add_organization("first")
    second = store.add_organization("second")
    store.add_member(user, store.add_group(first, "x"), store.add_group(second, "y"))
    store.configure(first, field="groups")
    before = store.member_group_ids(user)
    factory = FakeUnitOfWorkFactory(store)
    factory.policy_failures[second.id] = policy_failure(second.id)

    with pytest.raises(PolicyResolutionError) as excinfo:
        sync_user_groups(
            user_id=user.id,
            params=_params(groups=["eng"]),
            unit_of_work_factory=factory,
        )

    assert excinfo.value.organization_id == second.id
    assert store.member_group_ids(user) == before
    assert factory.last.rollback_called
    assert not factory.last.committed


def test_unexpected_resolver_error_is_wrapped() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    organization = store.add_organization()
    store.add_member(user, store.add_group(organization, "x"))
    factory = FakeUnitOfWorkFactory(store)
    factory.policy_failures[organization.id] = KeyError("group_sync")

    with pytest.raises(PolicyResolutionError) as excinfo:
        sync_user_groups(user_id=user.id, params=_params(), unit_of_work_factory=factory)

    assert isinstance(excinfo.value.__cause__, KeyError)


def test_group_creation_failure_aborts() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    organization = store.add_organization()
    stale = store.add_group(organization, "stale")
    store.add_member(user, stale)
    store.configure(organization, field="groups", auto_create_missing_groups=True)
    factory = FakeUnitOfWorkFactory(store)
    factory.fail_on_create = True

    with pytest.raises(GroupCreationError):
        sync_user_groups(
            user_id=user.id,
            params=_params(groups=["fresh"]),
            unit_of_work_factory=factory,
        )

    assert store.member_group_ids(user) == {stale.id}
    assert store.group_named(organization, "fresh") is None


def test_commit_failure_leaves_membership_untouched() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    organization = store.add_organization()
    stale = store.add_group(organization, "stale")
    store.add_member(user, stale)
    store.configure(organization, field="groups")
    factory = FakeUnitOfWorkFactory(store, commit_failures=1)

    with pytest.raises(CommitError):
        sync_user_groups(
            user_id=user.id,
            params=_params(groups=[]),
            unit_of_work_factory=factory,
        )

    assert store.member_group_ids(user) == {stale.id}
    assert factory.last.rollback_called


def test_globally_disabled_sync_touches_nothing() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    factory = FakeUnitOfWorkFactory(store)

    result = sync_user_groups(
        user_id=user.id,
        params=GroupSyncParams(sync_enabled=False),
        unit_of_work_factory=factory,
    )

    assert result.state is SyncState.COMMITTED
    assert result.plan.is_empty
    assert factory.created == []


def test_user_without_organizations_commits_nothing() -> None:
    store = InMemoryGroupStore()
    factory = FakeUnitOfWorkFactory(store)

    result = sync_user_groups(
        user_id=uuid4(),
        params=_params(groups=["eng"]),
        unit_of_work_factory=factory,
    )

    assert result.state is SyncState.COMMITTED
    assert result.organizations == ()
    assert factory.last.repositories.settings.resolved == []
    assert store.commits == 0


def test_policies_are_resolved_once_per_organization() -> None:
    store = InMemoryGroupStore()
    user = store.add_user()
    organization = store.add_organization()
    store.add_member(
        user,
        store.add_group(organization, "a"),
        store.add_group(organization, "b"),
    )
    factory = FakeUnitOfWorkFactory(store)

    sync_user_groups(user_id=user.id, params=_params(), unit_of_work_factory=factory)

    assert factory.last.repositories.settings.resolved == [organization.id]

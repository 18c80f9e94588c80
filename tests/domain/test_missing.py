from __future__ import annotations

from uuid import uuid4

import pytest

from groupsync.domain.errors import GroupCreationError
from groupsync.domain.identity import GroupIdRef, GroupNameRef
from groupsync.domain.missing import resolve_missing_groups
from groupsync.domain.model import GroupSource
from tests.helpers.groups import FakeGroupRepository, InMemoryGroupStore


def _repository() -> tuple[InMemoryGroupStore, FakeGroupRepository]:
    store = InMemoryGroupStore()
    return store, FakeGroupRepository(store.state)


def test_ids_pass_through_without_store_access() -> None:
    _, groups = _repository()
    group_id = uuid4()

    resolved = resolve_missing_groups(
        [GroupIdRef(group_id)], organization_id=uuid4(), auto_create=True, groups=groups
    )

    assert resolved == {group_id}
    assert groups.created == []


def test_names_are_dropped_without_auto_create() -> None:
    _, groups = _repository()
    group_id = uuid4()

    resolved = resolve_missing_groups(
        [GroupIdRef(group_id), GroupNameRef("eng")],
        organization_id=uuid4(),
        auto_create=False,
        groups=groups,
    )

    assert resolved == {group_id}
    assert groups.created == []


def test_auto_create_inserts_missing_groups_as_oidc() -> None:
    store, groups = _repository()
    organization = store.add_organization()

    resolved = resolve_missing_groups(
        [GroupNameRef("ops"), GroupNameRef("eng")],
        organization_id=organization.id,
        auto_create=True,
        groups=groups,
    )

    assert groups.created == [(organization.id, ("eng", "ops"), GroupSource.OIDC)]
    eng = store.group_named(organization, "eng")
    ops = store.group_named(organization, "ops")
    assert eng is not None
    assert ops is not None
    assert resolved == {eng.id, ops.id}
    assert eng.source is GroupSource.OIDC


def test_auto_create_reuses_groups_created_concurrently() -> None:
    store, groups = _repository()
    organization = store.add_organization()
    existing = store.add_group(organization, "eng")

    resolved = resolve_missing_groups(
        [GroupNameRef("eng")],
        organization_id=organization.id,
        auto_create=True,
        groups=groups,
    )

    assert resolved == {existing.id}


def test_short_insert_result_raises_creation_error() -> None:
    store, groups = _repository()
    organization = store.add_organization()
    groups.short_create = True

    with pytest.raises(GroupCreationError) as excinfo:
        resolve_missing_groups(
            [GroupNameRef("eng"), GroupNameRef("ops")],
            organization_id=organization.id,
            auto_create=True,
            groups=groups,
        )

    assert excinfo.value.organization_id == organization.id
    assert excinfo.value.names == ("eng", "ops")

from __future__ import annotations

from uuid import uuid4

from groupsync.domain.diff import diff_memberships, symmetric_difference
from groupsync.domain.identity import ExistingGroupRef, GroupIdRef, GroupNameRef


def test_symmetric_difference_with_custom_equality() -> None:
    only_right, only_left = symmetric_difference(
        [1, 2, 3], ["2", "3", "4"], lambda a, b: str(a) == b
    )

    assert only_right == ["4"]
    assert only_left == [1]


def test_renamed_group_still_matches_its_mapping_id() -> None:
    group_id = uuid4()
    existing = [ExistingGroupRef(group_id=group_id, group_name="Engineering (old)")]

    diff = diff_memberships(existing, [GroupIdRef(group_id)])

    assert diff.is_empty


def test_name_matches_existing_group_without_id() -> None:
    existing = [ExistingGroupRef(group_id=uuid4(), group_name="eng")]

    diff = diff_memberships(existing, [GroupNameRef("eng")])

    assert diff.is_empty


def test_diff_adds_missing_and_removes_stale_groups() -> None:
    keep_id, stale_id, new_id = uuid4(), uuid4(), uuid4()
    keep = ExistingGroupRef(group_id=keep_id, group_name="keep")
    stale = ExistingGroupRef(group_id=stale_id, group_name="stale")

    diff = diff_memberships([keep, stale], [GroupIdRef(keep_id), GroupIdRef(new_id)])

    assert diff.to_add == {GroupIdRef(new_id)}
    assert diff.to_remove == {stale}


def test_diff_partitions_both_sides() -> None:
    shared = uuid4()
    existing = [
        ExistingGroupRef(group_id=shared, group_name="shared"),
        ExistingGroupRef(group_id=uuid4(), group_name="ops"),
        ExistingGroupRef(group_id=uuid4(), group_name="legacy"),
    ]
    expected = [GroupIdRef(shared), GroupNameRef("ops"), GroupNameRef("new")]

    diff = diff_memberships(existing, expected)

    assert diff.to_add == {GroupNameRef("new")}
    assert {ref.group_name for ref in diff.to_remove} == {"legacy"}
    # Everything not added is matched by some existing group, and vice versa.
    matched_expected = [ref for ref in expected if ref not in diff.to_add]
    matched_existing = [ref for ref in existing if ref not in diff.to_remove]
    assert len(matched_expected) == 2
    assert len(matched_existing) == 2


def test_empty_inputs_produce_empty_diff() -> None:
    diff = diff_memberships([], [])

    assert diff.is_empty
    assert diff.to_add == frozenset()
    assert diff.to_remove == frozenset()

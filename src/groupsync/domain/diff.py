"""Membership diffing under the ID-or-name group equivalence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from groupsync.domain.identity import same_group

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from groupsync.domain.identity import ExistingGroupRef, GroupIdentity


@dataclass(frozen=True, slots=True)
class MembershipDiff[TExpected: GroupIdentity]:
    to_add: frozenset[TExpected]
    to_remove: frozenset[ExistingGroupRef]

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


def symmetric_difference[TLeft, TRight](
    left: Iterable[TLeft],
    right: Iterable[TRight],
    equal: Callable[[TLeft, TRight], bool],
) -> tuple[list[TRight], list[TLeft]]:
    """Return ``(only_in_right, only_in_left)`` under a custom equality.

    The equality is not a hash relation, so items are compared pairwise.
    """

    left_items = list(left)
    right_items = list(right)
    only_right = [b for b in right_items if not any(equal(a, b) for a in left_items)]
    only_left = [a for a in left_items if not any(equal(a, b) for b in right_items)]
    return only_right, only_left


def diff_memberships[TExpected: GroupIdentity](
    existing: Iterable[ExistingGroupRef],
    expected: Iterable[TExpected],
) -> MembershipDiff[TExpected]:
    """Compute what to add and what to remove to reach ``expected``."""

    to_add, to_remove = symmetric_difference(existing, expected, same_group)
    return MembershipDiff(to_add=frozenset(to_add), to_remove=frozenset(to_remove))

"""The transaction boundary a group sync runs in."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from groupsync.domain.ports.persistence import (
        GroupRepository,
        GroupSyncSettingsRepository,
        MembershipRepository,
        OrganizationRepository,
        UserRepository,
    )


@dataclass(frozen=True, slots=True)
class GroupSyncRepositories:
    """Everything one sync reads and writes, bound to the same transaction."""

    groups: GroupRepository
    memberships: MembershipRepository
    settings: GroupSyncSettingsRepository
    organizations: OrganizationRepository
    users: UserRepository


@runtime_checkable
class GroupSyncUnitOfWork(Protocol):
    """One transaction around :class:`GroupSyncRepositories`.

    Nothing is persisted without ``commit``. An exception escaping the
    ``with`` block rolls back and propagates.
    """

    @property
    def repositories(self) -> GroupSyncRepositories: ...

    def __enter__(self) -> GroupSyncUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

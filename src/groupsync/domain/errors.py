"""Error taxonomy for group synchronization.

Only claim parsing errors are recoverable: they affect a single organization
and are recorded on the sync result. Everything else aborts the invocation and
rolls back the unit of work.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID


class GroupSyncError(RuntimeError):
    """Base class for group sync failures."""


class ClaimParseError(GroupSyncError):
    """A group claim is present but cannot be interpreted."""


class ClaimTypeError(ClaimParseError, TypeError):
    """A group claim holds something other than a string or a list of strings."""


class PolicyResolutionError(GroupSyncError):
    """Sync settings for an organization could not be loaded."""

    def __init__(self, organization_id: UUID, message: str) -> None:
        super().__init__(f"organization {organization_id}: {message}")
        self.organization_id = organization_id


class GroupCreationError(GroupSyncError):
    """Missing groups could not be created."""

    def __init__(self, organization_id: UUID, names: tuple[str, ...], message: str) -> None:
        super().__init__(f"organization {organization_id}: {message}")
        self.organization_id = organization_id
        self.names = names


class CommitError(GroupSyncError):
    """The membership transaction failed in the database; it may be retried."""


class ConstraintViolationError(GroupSyncError):
    """A write broke a database constraint; replaying the sync cannot succeed."""

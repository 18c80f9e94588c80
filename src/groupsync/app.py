"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from groupsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyGroupSyncUnitOfWork,
    is_started,
    startup,
)
from groupsync.config import get_sync_config
from groupsync.domain.claims import parse_group_claims
from groupsync.domain.errors import CommitError
from groupsync.domain.ports.unit_of_work import GroupSyncUnitOfWork
from groupsync.domain.sync import GroupSyncResult
from groupsync.domain.sync import sync_user_groups as run_group_sync

if TYPE_CHECKING:
    from uuid import UUID

    from groupsync.config import SyncConfig
    from groupsync.domain.claims import MergedClaims
    from groupsync.domain.settings import GroupSyncSettings

UnitOfWorkFactory = Callable[[], GroupSyncUnitOfWork]


log = getLogger(__name__)


def _default_unit_of_work() -> GroupSyncUnitOfWork:
    if not is_started():
        startup()
    return SqlAlchemyGroupSyncUnitOfWork()


def sync_user_groups(
    user_id: UUID,
    merged_claims: MergedClaims,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: SyncConfig | None = None,
) -> GroupSyncResult:
    """Sync the user's groups from the merged IDP claims of one login.

    A failed commit replays the whole invocation, up to
    ``config.commit_attempts`` times.
    """

    sync_config = config or get_sync_config()
    effective_uow = unit_of_work_factory or _default_unit_of_work
    params = parse_group_claims(merged_claims, sync_enabled=sync_config.enabled)

    attempt = 1
    while True:
        try:
            return run_group_sync(
                user_id=user_id,
                params=params,
                unit_of_work_factory=effective_uow,
            )
        except CommitError:
            if attempt >= sync_config.commit_attempts:
                raise
            log.warning(
                "Commit of group sync for user %s failed (attempt %d/%d), retrying",
                user_id,
                attempt,
                sync_config.commit_attempts,
            )
            attempt += 1


def configure_group_sync(
    organization_id: UUID,
    settings: GroupSyncSettings,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> None:
    """Store the group sync policy of an existing organization."""

    effective_uow = unit_of_work_factory or _default_unit_of_work
    with effective_uow() as uow:
        if uow.repositories.organizations.get(organization_id) is None:
            raise LookupError(f"Unknown organization {organization_id}")
        uow.repositories.settings.save(organization_id, settings)
        uow.commit()

    log.info(
        "Stored group sync settings for organization %s: field=%r, %d mapping(s), auto_create=%s",
        organization_id,
        settings.group_field,
        len(settings.group_mapping),
        settings.auto_create_missing_groups,
    )

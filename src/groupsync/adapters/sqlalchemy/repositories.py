"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, cast

from pydantic import ValidationError
from sqlalchemy import delete, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from groupsync.adapters.sqlalchemy.mappings import (
    group_member_table,
    group_table,
    organization_setting_table,
)
from groupsync.domain.errors import (
    CommitError,
    ConstraintViolationError,
    GroupCreationError,
    PolicyResolutionError,
)
from groupsync.domain.model import (
    Group,
    GroupSource,
    Organization,
    SettingKey,
    User,
    everyone_group_id,
    new_id,
)
from groupsync.domain.ports.persistence import UserGroupRow
from groupsync.domain.settings import GroupSyncSettings

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from uuid import UUID

    from sqlalchemy import Row, Table
    from sqlalchemy.orm import Session
    from sqlalchemy.sql.dml import Insert

log = getLogger(__name__)

_CONFLICT_AWARE_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _insert_ignoring_conflicts(
    session: Session, table: Table, index_elements: Sequence[str]
) -> Insert | None:
    """Return ``INSERT ... ON CONFLICT DO NOTHING`` when the dialect has it."""

    dialect_name = session.get_bind().dialect.name
    factory = _CONFLICT_AWARE_INSERTS.get(dialect_name)
    if factory is None:
        return None
    return factory(table).on_conflict_do_nothing(index_elements=list(index_elements))


def _row_to_user_group(row: Row[tuple[UUID, str, UUID]]) -> UserGroupRow:
    group_id, name, organization_id = row
    return UserGroupRow(
        group_id=group_id,
        group_name=name,
        organization_id=organization_id,
        is_everyone=group_id == everyone_group_id(organization_id),
    )


class SqlAlchemyGroupRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Group) -> None:
        self.session.add(entity)

    def get(self, group_id: UUID) -> Group | None:
        return self.session.get(Group, group_id)

    def groups_for_member(self, user_id: UUID) -> Sequence[UserGroupRow]:
        stmt = (
            select(group_table.c.id, group_table.c.name, group_table.c.organization_id)
            .join(group_member_table, group_member_table.c.group_id == group_table.c.id)
            .where(group_member_table.c.user_id == user_id)
            .order_by(group_table.c.organization_id, group_table.c.name)
            .with_for_update(of=group_member_table)
        )
        try:
            self.session.flush()
            return [_row_to_user_group(row) for row in self.session.execute(stmt)]
        except SQLAlchemyError as exc:
            raise CommitError(f"could not read groups of user {user_id}: {exc}") from exc

    def insert_missing_groups(
        self,
        organization_id: UUID,
        names: Collection[str],
        *,
        source: GroupSource,
    ) -> Sequence[UserGroupRow]:
        unique_names = sorted(set(names))
        if not unique_names:
            return []
        try:
            self.session.flush()
            self._insert_names(organization_id, unique_names, source)
            stmt = (
                select(group_table.c.id, group_table.c.name, group_table.c.organization_id)
                .where(group_table.c.organization_id == organization_id)
                .where(group_table.c.name.in_(unique_names))
                .order_by(group_table.c.name)
            )
            rows = [_row_to_user_group(row) for row in self.session.execute(stmt)]
        except SQLAlchemyError as exc:
            raise GroupCreationError(organization_id, tuple(unique_names), str(exc)) from exc
        return rows

    def _insert_names(self, organization_id: UUID, names: list[str], source: GroupSource) -> None:
        stmt = _insert_ignoring_conflicts(self.session, group_table, ("organization_id", "name"))
        if stmt is None:
            existing = set(
                self.session.execute(
                    select(group_table.c.name)
                    .where(group_table.c.organization_id == organization_id)
                    .where(group_table.c.name.in_(names))
                ).scalars()
            )
            names = [name for name in names if name not in existing]
            if not names:
                return
            stmt = insert(group_table)
        self.session.execute(
            stmt,
            [
                {"id": new_id(), "organization_id": organization_id, "name": name, "source": source}
                for name in names
            ],
        )


class SqlAlchemyMembershipRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def set_user_groups(
        self,
        user_id: UUID,
        *,
        add: Collection[UUID],
        remove: Collection[UUID],
    ) -> None:
        try:
            self.session.flush()
            if remove:
                self.session.execute(
                    delete(group_member_table)
                    .where(group_member_table.c.user_id == user_id)
                    .where(group_member_table.c.group_id.in_(list(remove)))
                )
            if add:
                self._insert_memberships(user_id, add)
        except IntegrityError as exc:
            raise ConstraintViolationError(
                f"group membership of user {user_id} violates a constraint: {exc}"
            ) from exc
        except SQLAlchemyError as exc:
            raise CommitError(f"could not update groups of user {user_id}: {exc}") from exc

    def group_ids_for_member(self, user_id: UUID) -> set[UUID]:
        stmt = select(group_member_table.c.group_id).where(group_member_table.c.user_id == user_id)
        return set(self.session.execute(stmt).scalars())

    def _insert_memberships(self, user_id: UUID, group_ids: Collection[UUID]) -> None:
        stmt = _insert_ignoring_conflicts(self.session, group_member_table, ("user_id", "group_id"))
        pending = set(group_ids)
        existing = set(
            self.session.execute(
                select(group_table.c.id).where(group_table.c.id.in_(list(pending)))
            ).scalars()
        )
        if stale := pending - existing:
            # Mappings may still name groups that were deleted since.
            log.warning(
                "Not adding user %s to %d group(s) that no longer exist: %s",
                user_id,
                len(stale),
                ", ".join(sorted(str(group_id) for group_id in stale)),
            )
        pending = existing
        if not pending:
            return
        if stmt is None:
            pending -= self.group_ids_for_member(user_id)
            if not pending:
                return
            stmt = insert(group_member_table)
        self.session.execute(
            stmt,
            [{"user_id": user_id, "group_id": group_id} for group_id in sorted(pending, key=str)],
        )


class SqlAlchemyGroupSyncSettingsRepository:
    """Reads and writes the ``group_sync`` runtime setting of an organization."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def resolve(self, organization_id: UUID) -> GroupSyncSettings:
        stmt = (
            select(organization_setting_table.c.value)
            .where(organization_setting_table.c.organization_id == organization_id)
            .where(organization_setting_table.c.key == SettingKey.GROUP_SYNC)
        )
        try:
            payload = cast("str | None", self.session.execute(stmt).scalar_one_or_none())
        except SQLAlchemyError as exc:
            raise PolicyResolutionError(organization_id, str(exc)) from exc
        if payload is None:
            return GroupSyncSettings()
        try:
            return GroupSyncSettings.from_json(payload)
        except ValidationError as exc:
            raise PolicyResolutionError(
                organization_id, f"invalid group sync settings: {exc}"
            ) from exc

    def save(self, organization_id: UUID, settings: GroupSyncSettings) -> None:
        self.session.flush()
        self.session.execute(
            delete(organization_setting_table)
            .where(organization_setting_table.c.organization_id == organization_id)
            .where(organization_setting_table.c.key == SettingKey.GROUP_SYNC)
        )
        self.session.execute(
            insert(organization_setting_table).values(
                organization_id=organization_id,
                key=SettingKey.GROUP_SYNC,
                value=settings.to_json(),
            )
        )


class SqlAlchemyOrganizationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Organization) -> None:
        """Persist the organization together with its everyone group."""
        self.session.add(entity)
        # The everyone group row references the organization row.
        self.session.flush()
        if self.session.get(Group, entity.everyone_group_id) is None:
            self.session.add(entity.create_everyone_group())

    def get(self, organization_id: UUID) -> Organization | None:
        return self.session.get(Organization, organization_id)


class SqlAlchemyUserRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: User) -> None:
        self.session.add(entity)

    def get(self, user_id: UUID) -> User | None:
        return self.session.get(User, user_id)


if TYPE_CHECKING:
    from groupsync.domain.ports.persistence import (
        GroupRepository,
        GroupSyncSettingsRepository,
        MembershipRepository,
        OrganizationRepository,
        UserRepository,
    )

    _session_stub = cast("Session", object())
    _group_repo: GroupRepository = SqlAlchemyGroupRepository(_session_stub)
    _membership_repo: MembershipRepository = SqlAlchemyMembershipRepository(_session_stub)
    _settings_repo: GroupSyncSettingsRepository = SqlAlchemyGroupSyncSettingsRepository(
        _session_stub
    )
    _organization_repo: OrganizationRepository = SqlAlchemyOrganizationRepository(_session_stub)
    _user_repo: UserRepository = SqlAlchemyUserRepository(_session_stub)

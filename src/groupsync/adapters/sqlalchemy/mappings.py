"""SQLAlchemy mapping metadata for the groupsync domain model."""

from __future__ import annotations

import logging
import uuid
from enum import StrEnum
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    Enum,
    ForeignKey,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from groupsync.domain.model import (
    Group,
    GroupMember,
    GroupSource,
    Organization,
    SettingKey,
    User,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


def _string_enum(enum_cls: type[StrEnum], name: str) -> Enum:
    # Store values ("oidc"), not member names ("OIDC").
    return Enum(enum_cls, name=name, native_enum=False, values_callable=_enum_values)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Tenancy tables --------------------------------------------------------------

organization_table = Table(
    "organization",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False, unique=True),
)

user_table = Table(
    "user_account",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("username", String, nullable=False, unique=True),
    Column("email", String, nullable=True),
)

group_table = Table(
    "group",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "organization_id",
        UUIDColumnType,
        ForeignKey("organization.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String, nullable=False),
    Column(
        "source",
        _string_enum(GroupSource, "group_source"),
        nullable=False,
        default=GroupSource.USER,
    ),
    UniqueConstraint("organization_id", "name"),
)

group_member_table = Table(
    "group_member",
    mapper_registry.metadata,
    Column(
        "user_id",
        UUIDColumnType,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "group_id",
        UUIDColumnType,
        ForeignKey("group.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

# Runtime configuration -------------------------------------------------------

organization_setting_table = Table(
    "organization_setting",
    mapper_registry.metadata,
    Column(
        "organization_id",
        UUIDColumnType,
        ForeignKey("organization.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("key", _string_enum(SettingKey, "setting_key"), primary_key=True),
    Column("value", Text, nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Organization, organization_table)
    mapper_registry.map_imperatively(User, user_table)
    mapper_registry.map_imperatively(Group, group_table)
    mapper_registry.map_imperatively(GroupMember, group_member_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)

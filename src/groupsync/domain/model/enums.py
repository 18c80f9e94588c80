"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class GroupSource(StrEnum):
    """Who created a group: an operator, or group sync on behalf of the IDP."""

    USER = "user"
    OIDC = "oidc"


class SettingKey(StrEnum):
    """Keys of per-organization runtime settings."""

    GROUP_SYNC = "group_sync"

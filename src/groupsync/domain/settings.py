"""Per-organization group sync policy."""

from __future__ import annotations

import re
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GroupSyncSettings(BaseModel):
    """Group sync policy for one organization, stored as JSON.

    An empty ``group_field`` disables sync for the organization. ``group_mapping``
    maps an IDP group name to one or more internal group IDs; mapping by ID keeps
    working when the internal group is renamed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    group_field: str = Field(default="", alias="field")
    group_mapping: dict[str, frozenset[UUID]] = Field(
        default_factory=dict[str, frozenset[UUID]], alias="mapping"
    )
    regex_filter: re.Pattern[str] | None = None
    auto_create_missing_groups: bool = False

    @field_validator("group_mapping", mode="before")
    @classmethod
    def null_mapping_is_empty(cls, value: object) -> object:
        # Settings written by Go services encode empty maps and lists as null.
        if value is None:
            return {}
        if isinstance(value, dict):
            return {name: () if ids is None else ids for name, ids in value.items()}
        return value

    @property
    def sync_enabled(self) -> bool:
        return self.group_field != ""

    def accepts(self, claim_value: str) -> bool:
        """Return whether ``claim_value`` passes the configured filter."""
        if self.regex_filter is None:
            return True
        return self.regex_filter.search(claim_value) is not None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, payload: str | bytes) -> GroupSyncSettings:
        return cls.model_validate_json(payload)

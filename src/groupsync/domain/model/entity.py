"""Identity shared by organizations, groups and users."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID, uuid4


def new_id() -> UUID:
    """Mint an identifier before the row exists in the database."""

    return uuid4()


@dataclass(eq=False, kw_only=True)
class Entity:
    # Compared by object identity; the session's identity map keeps one instance per row.
    id: UUID = field(default_factory=new_id)

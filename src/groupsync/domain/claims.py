"""Reading group claims out of the merged IDP claim set."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import cast

from groupsync.domain.errors import ClaimTypeError

type MergedClaims = Mapping[str, object]


@dataclass(frozen=True, slots=True)
class GroupSyncParams:
    """Input handed to the orchestrator by the authentication flow."""

    sync_enabled: bool
    merged_claims: MergedClaims = field(default_factory=dict[str, object])


def parse_group_claims(merged_claims: MergedClaims, *, sync_enabled: bool) -> GroupSyncParams:
    """Bundle merged claims with the deployment-wide sync switch."""

    if not sync_enabled:
        return GroupSyncParams(sync_enabled=False)
    return GroupSyncParams(sync_enabled=True, merged_claims=merged_claims)


def parse_string_list_claim(value: object) -> tuple[str, ...]:
    """Normalize a claim value into an ordered tuple of strings.

    ``None`` and the empty string mean "no values". A single string counts as
    one value, but a comma inside it almost always means the IDP was set up to
    send a CSV string instead of an array, so that is rejected.
    """

    if value is None:
        return ()
    if isinstance(value, str):
        if not value:
            return ()
        if "," in value:
            raise ClaimTypeError(
                f"invalid claim type: got a csv string ({value!r}), "
                "change this claim to return an array of strings instead"
            )
        return (value,)
    if isinstance(value, list | tuple):
        items = cast("list[object] | tuple[object, ...]", value)
        parsed: list[str] = []
        for index, item in enumerate(items):
            if not isinstance(item, str):
                raise ClaimTypeError(
                    f"invalid claim type: element {index} expected a string, "
                    f"got {type(item).__name__}"
                )
            parsed.append(item)
        return tuple(parsed)
    raise ClaimTypeError(
        f"invalid claim type: expected an array of strings, got {type(value).__name__}"
    )


def extract_claim_values(claims: MergedClaims, claim_field: str) -> tuple[str, ...]:
    """Return the values of ``claim_field``; an absent field yields no values."""

    if claim_field not in claims:
        return ()
    return parse_string_list_claim(claims[claim_field])

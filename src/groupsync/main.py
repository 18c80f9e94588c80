#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, cast
from uuid import UUID

from dotenv import load_dotenv

from groupsync.app import configure_group_sync, sync_user_groups
from groupsync.config import configure_logging
from groupsync.domain.settings import GroupSyncSettings

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync group memberships from IDP claims")
    commands = parser.add_subparsers(dest="command", required=True)

    sync_parser = commands.add_parser("sync", help="Sync one user's groups from a claims file")
    sync_parser.add_argument("--user-id", type=UUID, required=True, help="User to sync")
    sync_parser.add_argument(
        "--claims",
        type=str,
        required=True,
        help="Path to a JSON object with the merged claims, or '-' for stdin",
    )

    configure_parser = commands.add_parser(
        "configure", help="Store the group sync settings of an organization"
    )
    configure_parser.add_argument("--organization-id", type=UUID, required=True)
    configure_parser.add_argument(
        "--field",
        type=str,
        default="",
        help="Claim holding the user's groups; empty disables sync (default: %(default)r)",
    )
    configure_parser.add_argument(
        "--mapping",
        action="append",
        default=[],
        metavar="NAME=GROUP_ID",
        help="Map an IDP group name to a group ID; repeatable",
    )
    configure_parser.add_argument("--regex-filter", type=str, help="Only sync matching claims")
    configure_parser.add_argument(
        "--auto-create",
        action="store_true",
        help="Create groups named in claims that do not exist yet",
    )
    return parser.parse_args(list(argv))


def _load_claims(source: str) -> dict[str, object]:
    try:
        raw = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
        loaded = json.loads(raw)
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read claims from {source}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ValueError("Claims must be a JSON object")
    return cast(dict[str, object], loaded)


def _parse_mapping(entries: Sequence[str]) -> dict[str, set[UUID]]:
    mapping: dict[str, set[UUID]] = {}
    for entry in entries:
        name, separator, group_id = entry.partition("=")
        if not separator or not name:
            raise ValueError(f"Invalid mapping {entry!r}, expected NAME=GROUP_ID")
        try:
            mapping.setdefault(name, set()).add(UUID(group_id))
        except ValueError as exc:
            raise ValueError(f"Invalid group ID in mapping {entry!r}") from exc
    return mapping


def _build_settings(args: argparse.Namespace) -> GroupSyncSettings:
    return GroupSyncSettings.model_validate(
        {
            "field": args.field,
            "mapping": _parse_mapping(args.mapping),
            "regex_filter": args.regex_filter,
            "auto_create_missing_groups": args.auto_create,
        }
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    try:
        parsed_args = _parse_args(sys.argv[1:] if argv is None else argv)
        claims = _load_claims(parsed_args.claims) if parsed_args.command == "sync" else None
        settings = _build_settings(parsed_args) if parsed_args.command == "configure" else None
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        if claims is not None:
            result = sync_user_groups(parsed_args.user_id, claims)
            print(
                f"{result.state}: +{len(result.plan.add_group_ids)} "
                f"-{len(result.plan.remove_group_ids)}, {len(result.skipped)} skipped"
            )
        elif settings is not None:
            configure_group_sync(parsed_args.organization_id, settings)

    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def cli() -> None:
    load_dotenv()
    configure_logging()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    cli()

"""Logging setup for the groupsync CLI."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _level_from_env() -> int:
    raw = os.getenv("GROUPSYNC_LOG_LEVEL", "").strip().upper()
    if not raw:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(raw)
    if level is None:
        raise ConfigurationError(f"Invalid log level for GROUPSYNC_LOG_LEVEL: {raw!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once.

    ``level`` defaults to ``GROUPSYNC_LOG_LEVEL`` (a level name such as
    ``DEBUG``), else INFO. Pass ``force=True`` to replace existing handlers.
    """

    logging.basicConfig(
        level=_level_from_env() if level is None else level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
    # Statement echo belongs to DEBUG runs only.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

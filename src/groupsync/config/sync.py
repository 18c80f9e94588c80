"""Runtime switches for group synchronization."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, env_int
from .errors import ConfigurationError

DEFAULT_COMMIT_ATTEMPTS = 3


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Deployment-wide group sync behaviour.

    ``enabled`` is the global switch; per-organization policy lives in the
    settings store. ``commit_attempts`` bounds how often a whole invocation is
    replayed after a failed commit.
    """

    enabled: bool = True
    commit_attempts: int = DEFAULT_COMMIT_ATTEMPTS

    def __post_init__(self) -> None:
        if self.commit_attempts < 1:
            raise ConfigurationError("commit_attempts must be at least 1")


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        enabled=env_flag("GROUPSYNC_ENABLED", default=True),
        commit_attempts=env_int("GROUPSYNC_COMMIT_ATTEMPTS", default=DEFAULT_COMMIT_ATTEMPTS),
    )

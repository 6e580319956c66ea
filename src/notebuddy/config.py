"""Configuration settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DEBOUNCE_SECONDS = 1.0
DEFAULT_CONFLICT_TOLERANCE_SECONDS = 5.0
DEFAULT_REMOTE_TIMEOUT_SECONDS = 5.0


def get_remote_root() -> str:
    """Get the root URI of the remote blob store."""
    return os.environ.get("NOTEBUDDY_REMOTE_ROOT", str(Path.cwd() / "blobs"))


def get_cache_dir() -> str | None:
    """Get the device-local cache directory.

    Setting ``NOTEBUDDY_CACHE_DIR`` to an empty string disables the cache.
    """
    raw = os.environ.get("NOTEBUDDY_CACHE_DIR")
    if raw is None:
        return str(Path.home() / ".notebuddy" / "cache")
    return raw or None


def get_current_user() -> str | None:
    """Get the user id supplied by the environment, if any."""
    return os.environ.get("NOTEBUDDY_USER") or None


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        msg = f"{name} must be a number, got {raw!r}"
        raise ValueError(msg) from exc


@dataclass(frozen=True)
class SyncConfig:
    """Timing knobs for the synchronization layer."""

    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    conflict_tolerance_seconds: float = DEFAULT_CONFLICT_TOLERANCE_SECONDS
    remote_timeout_seconds: float = DEFAULT_REMOTE_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Build a config from ``NOTEBUDDY_*`` environment variables."""
        return cls(
            debounce_seconds=_float_env(
                "NOTEBUDDY_DEBOUNCE_SECONDS",
                DEFAULT_DEBOUNCE_SECONDS,
            ),
            conflict_tolerance_seconds=_float_env(
                "NOTEBUDDY_CONFLICT_TOLERANCE_SECONDS",
                DEFAULT_CONFLICT_TOLERANCE_SECONDS,
            ),
            remote_timeout_seconds=_float_env(
                "NOTEBUDDY_REMOTE_TIMEOUT_SECONDS",
                DEFAULT_REMOTE_TIMEOUT_SECONDS,
            ),
        )

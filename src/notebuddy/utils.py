"""Utility functions for notebuddy."""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import fsspec

if TYPE_CHECKING:
    from pathlib import Path

ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
ISO_MILLIS = "milliseconds"


def validate_id(identifier: str, name: str) -> str:
    """Validate that an identifier contains only safe characters.

    Identifiers end up inside storage keys and blob paths, so anything that
    could escape a prefix (slashes, dots) is rejected.

    Args:
        identifier: The string to validate.
        name: The name of the field (for error messages).

    Returns:
        The validated identifier.

    Raises:
        ValueError: If the identifier contains invalid characters.

    """
    if not identifier or not ID_PATTERN.match(identifier):
        msg = (
            f"Invalid {name}: {identifier}. "
            "Must be alphanumeric, hyphens, or underscores."
        )
        raise ValueError(msg)
    return str(identifier)


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    rendered = ensure_utc(value).isoformat(timespec=ISO_MILLIS)
    return rendered.replace("+00:00", "Z")


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Raises:
        ValueError: If ``raw`` is not a valid ISO-8601 timestamp.

    """
    return ensure_utc(datetime.fromisoformat(raw.strip()))


def next_timestamp(previous: datetime | None, now: datetime) -> datetime:
    """Return ``now``, bumped past ``previous`` when the clock has not advanced."""
    if previous is not None and now <= previous:
        return previous + timedelta(milliseconds=1)
    return now


def get_fs_and_path(
    path: str | Path,
    fs: fsspec.AbstractFileSystem | None = None,
) -> tuple[fsspec.AbstractFileSystem, str]:
    """Resolve a filesystem and a protocol-less path for ``path``.

    When ``fs`` is supplied it is used as-is; otherwise the protocol embedded
    in ``path`` (``memory://``, ``s3://``...) picks the implementation and a
    bare path means the local filesystem.
    """
    path_str = str(path)
    if fs is not None:
        return fs, fs._strip_protocol(path_str).rstrip("/")  # noqa: SLF001
    fs_obj, stripped = fsspec.core.url_to_fs(path_str)
    return fs_obj, stripped.rstrip("/")


def fs_join(base: str, *parts: str) -> str:
    """Join path components with forward slashes."""
    joined = base.rstrip("/")
    for part in parts:
        joined = f"{joined}/{part.strip('/')}"
    return joined


def fs_exists(fs: fsspec.AbstractFileSystem, path: str) -> bool:
    """Return True if ``path`` exists on ``fs``."""
    return bool(fs.exists(path))


def fs_parent(path: str) -> str:
    """Return the parent of a slash-separated path."""
    return path.rstrip("/").rsplit("/", 1)[0]


def fs_write_text(fs: fsspec.AbstractFileSystem, path: str, text: str) -> None:
    """Write ``text`` to ``path``, creating parent directories first."""
    fs.makedirs(fs_parent(path), exist_ok=True)
    with fs.open(path, "w", encoding="utf-8") as handle:
        handle.write(text)


def fs_read_text(fs: fsspec.AbstractFileSystem, path: str) -> str:
    """Read ``path`` as UTF-8 text."""
    with fs.open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def fs_read_json(fs: fsspec.AbstractFileSystem, path: str) -> Any:  # noqa: ANN401
    """Read and decode a JSON document from ``path``."""
    return json.loads(fs_read_text(fs, path))


def fs_write_json(
    fs: fsspec.AbstractFileSystem,
    path: str,
    payload: dict[str, Any],
) -> None:
    """Encode ``payload`` as JSON and write it to ``path``."""
    fs_write_text(fs, path, json.dumps(payload, indent=2))


_last_note_millis = 0


def new_note_id(now: datetime | None = None) -> str:
    """Return a timestamp-derived note id (milliseconds since the epoch).

    Two ids requested within the same millisecond in one process differ.
    """
    global _last_note_millis  # noqa: PLW0603
    millis = int((now or utcnow()).timestamp() * 1000)
    if millis == _last_note_millis:
        millis += 1
    _last_note_millis = millis
    return str(millis)

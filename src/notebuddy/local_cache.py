"""Device-local note cache.

A small key-value store with one file per key under a cache directory.
Every failure is soft: it is logged and reported through the return value,
never raised, so local-first editing keeps working when the medium does not.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .config import get_cache_dir
from .models import Note
from .utils import (
    format_timestamp,
    fs_exists,
    fs_join,
    fs_read_text,
    fs_write_text,
    get_fs_and_path,
    parse_timestamp,
    utcnow,
    validate_id,
)

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    import fsspec

logger = logging.getLogger(__name__)

NOTE_PREFIX = "notebuddy_note_"
LAST_EDITED_PREFIX = "notebuddy_edited_"
PROBE_KEY = "test_localStorage"


class LocalCacheStore:
    """Synchronous key-value cache scoped to a single device."""

    def __init__(
        self,
        root: str | Path | None,
        *,
        fs: fsspec.AbstractFileSystem | None = None,
    ) -> None:
        """Bind the cache to ``root``; ``None`` means no local medium at all."""
        self._available: bool | None = None
        if root is None:
            self.fs = None
            self.root = ""
            self._available = False
        else:
            self.fs, self.root = get_fs_and_path(root, fs)

    @classmethod
    def from_env(cls) -> LocalCacheStore:
        """Open the cache at ``NOTEBUDDY_CACHE_DIR``."""
        return cls(get_cache_dir())

    def _key_path(self, key: str) -> str:
        return fs_join(self.root, key)

    def is_available(self) -> bool:
        """Probe once whether the cache medium accepts writes."""
        if self._available is None:
            self._available = self._probe()
        return self._available

    def _probe(self) -> bool:
        if self.fs is None:
            return False
        probe_path = self._key_path(PROBE_KEY)
        try:
            fs_write_text(self.fs, probe_path, PROBE_KEY)
            self.fs.rm(probe_path)
        except OSError as exc:
            logger.warning("Local cache at %s is unavailable: %s", self.root, exc)
            return False
        return True

    def get_item(self, key: str) -> str | None:
        """Return the raw value stored under ``key`` or ``None``."""
        if not self.is_available():
            return None
        path = self._key_path(key)
        try:
            if not fs_exists(self.fs, path):
                return None
            return fs_read_text(self.fs, path)
        except OSError as exc:
            logger.error("Error reading %s from local cache: %s", key, exc)  # noqa: TRY400
            return None

    def set_item(self, key: str, value: str) -> bool:
        """Store ``value`` under ``key``; returns False when the write failed."""
        if not self.is_available():
            return False
        try:
            fs_write_text(self.fs, self._key_path(key), value)
        except OSError as exc:
            logger.error("Error writing %s to local cache: %s", key, exc)  # noqa: TRY400
            return False
        return True

    def remove_item(self, key: str) -> None:
        """Remove ``key`` if present."""
        if not self.is_available():
            return
        path = self._key_path(key)
        try:
            if fs_exists(self.fs, path):
                self.fs.rm(path)
        except OSError as exc:
            logger.error("Error removing %s from local cache: %s", key, exc)  # noqa: TRY400

    def save(self, note: Note) -> bool:
        """Cache ``note`` and stamp its last-edited time.

        Returns:
            True when both entries were written.

        """
        note_id = validate_id(note.id, "note_id")
        try:
            payload = note.to_json()
        except ValueError as exc:
            logger.error("Error serialising note %s for local cache: %s", note_id, exc)  # noqa: TRY400
            return False
        if not self.set_item(f"{NOTE_PREFIX}{note_id}", payload):
            return False
        return self.set_item(
            f"{LAST_EDITED_PREFIX}{note_id}",
            format_timestamp(utcnow()),
        )

    def load(self, note_id: str) -> Note | None:
        """Return the cached note, treating corrupt entries as absent."""
        safe_note_id = validate_id(note_id, "note_id")
        raw = self.get_item(f"{NOTE_PREFIX}{safe_note_id}")
        if raw is None:
            return None
        try:
            return Note.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Discarding corrupt cache entry for note %s: %s", note_id, exc)  # noqa: TRY400
            return None

    def last_edited(self, note_id: str) -> datetime | None:
        """Return when ``note_id`` was last written to this cache."""
        safe_note_id = validate_id(note_id, "note_id")
        raw = self.get_item(f"{LAST_EDITED_PREFIX}{safe_note_id}")
        if raw is None:
            return None
        try:
            return parse_timestamp(raw)
        except ValueError:
            logger.warning("Invalid last-edited timestamp for note %s: %r", note_id, raw)
            return None

    def delete(self, note_id: str) -> None:
        """Remove the note and its last-edited stamp; absent ids are fine."""
        safe_note_id = validate_id(note_id, "note_id")
        self.remove_item(f"{NOTE_PREFIX}{safe_note_id}")
        self.remove_item(f"{LAST_EDITED_PREFIX}{safe_note_id}")

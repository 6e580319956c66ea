"""Local-first editing session for a single open note.

Every edit is cached on the device immediately and pushed to the remote
store after a trailing-edge debounce. Remote failures never undo local
writes; they only flip the save status back to ``unsaved`` and raise a
notification.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .config import DEFAULT_DEBOUNCE_SECONDS
from .errors import RemoteStoreError
from .models import normalize_title
from .notifications import Level, LoggingNotifier, Notifier
from .scheduler import DebouncedTask
from .settings import EditorSettings
from .utils import next_timestamp, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from .local_cache import LocalCacheStore
    from .models import Note
    from .remote_store import RemoteNoteStore

logger = logging.getLogger(__name__)


class SaveStatus(StrEnum):
    """Save indicator shown next to the note title."""

    NEW = "new"
    UNSAVED = "unsaved"
    SAVING = "saving"
    SAVED = "saved"


class EditingSession:
    """Owns the in-memory copy of a note while it is being edited."""

    def __init__(  # noqa: PLR0913
        self,
        note: Note,
        local_store: LocalCacheStore,
        remote_store: RemoteNoteStore,
        *,
        settings: EditorSettings | None = None,
        notifier: Notifier | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        clock: Callable[[], datetime] = utcnow,
        is_new: bool = False,
    ) -> None:
        """Start editing ``note``; ``is_new`` marks a note never saved remotely."""
        self.note = note
        self.local_store = local_store
        self.remote_store = remote_store
        self.settings = settings or EditorSettings()
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock
        self.status = SaveStatus.NEW if is_new else SaveStatus.SAVED
        self.closed = False
        self.remote_writes = 0
        self._local_write_failed = False
        self._save_lock = asyncio.Lock()
        self._written_revision = -1
        self._debounce = DebouncedTask(self._push_remote, debounce_seconds)

    @property
    def has_pending_save(self) -> bool:
        """True while a debounced remote save is scheduled."""
        return self._debounce.pending

    def _apply(self, **changes: Any) -> Note:  # noqa: ANN401
        if self.closed:
            msg = "Editing session is closed"
            raise RuntimeError(msg)
        changes["updated_at"] = next_timestamp(self.note.updated_at, self.clock())
        changes["revision"] = self.note.revision + 1
        self.note = self.note.model_copy(update=changes)
        self._write_local()
        self.status = SaveStatus.UNSAVED
        self._debounce.arm(self.note)
        return self.note

    def _write_local(self) -> None:
        if not self.local_store.is_available():
            return
        saved = self.local_store.save(self.note)
        if not saved and not self._local_write_failed:
            logger.warning("Local cache write failed for note %s", self.note.id)
        self._local_write_failed = not saved

    def edit(self, *, title: str | None = None, content: str | None = None) -> Note:
        """Apply an editor change event."""
        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = normalize_title(title)
        if content is not None:
            changes["content"] = content
        return self._apply(**changes)

    def toggle_favorite(self) -> Note:
        """Flip the favorite flag."""
        return self._apply(is_favorite=not self.note.is_favorite)

    async def _push_remote(self, note: Note) -> bool:
        # One remote write at a time; a write queued behind a newer one is dropped.
        async with self._save_lock:
            if self.closed:
                return False
            if note.revision < self._written_revision:
                logger.debug(
                    "Skipping stale save of note %s (revision %d < %d)",
                    note.id,
                    note.revision,
                    self._written_revision,
                )
                return True
            if self._local_write_failed:
                self.notifier.notify(
                    Level.WARNING,
                    "Not saved on this device",
                    "Your latest edits are only held in memory.",
                )

            self.status = SaveStatus.SAVING
            try:
                await self.remote_store.save(note)
            except RemoteStoreError as exc:
                if self.closed:
                    return False
                logger.warning("Debounced save of note %s failed: %s", note.id, exc)
                self.status = SaveStatus.UNSAVED
                self.notifier.notify(
                    Level.ERROR,
                    "Save failed",
                    "Failed to save your note. Please try again.",
                )
                return False

            self._written_revision = note.revision
            if self.closed:
                return True
            self.remote_writes += 1
            current = note.revision == self.note.revision
            self.status = SaveStatus.SAVED if current else SaveStatus.UNSAVED
            return True

    async def save_now(self) -> bool:
        """Push the current note to the remote store without waiting."""
        self._debounce.cancel()
        saved = await self._push_remote(self.note)
        if saved:
            self.notifier.notify(
                Level.INFO,
                "Note saved",
                "Your note has been saved successfully.",
            )
        return saved

    async def wait_idle(self) -> None:
        """Wait for remote saves that have already started."""
        await self._debounce.wait()

    def close(self) -> None:
        """Tear down the session; a pending debounced save is dropped."""
        if self._debounce.cancel():
            logger.info("Dropped pending remote save for note %s", self.note.id)
        self.closed = True

"""Notes management against the remote store.

These are the server-side operations: every call is scoped to the
authenticated user and talks to the remote store only. Device-side editing
with the local cache goes through ``notebuddy.sync``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .auth import AuthSession, require_user
from .errors import NoteNotFoundError
from .models import Note, normalize_title
from .utils import new_note_id, next_timestamp, utcnow, validate_id

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from .remote_store import RemoteNoteStore

logger = logging.getLogger(__name__)


class NoteService:
    """CRUD operations on a user's notes."""

    def __init__(
        self,
        remote_store: RemoteNoteStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Serve notes out of ``remote_store``."""
        self.remote_store = remote_store
        self.clock = clock

    async def _existing(self, user_id: str, note_id: str) -> Note:
        safe_note_id = validate_id(note_id, "note_id")
        note = await self.remote_store.load(user_id, safe_note_id)
        if note is None:
            msg = f"Note {safe_note_id} not found"
            raise NoteNotFoundError(msg)
        return note

    async def create_note(
        self,
        session: AuthSession | None,
        *,
        title: str = "",
        content: str = "",
    ) -> Note:
        """Create and store a new note.

        Raises:
            UnauthorizedError: If there is no session.
            RemoteStoreError: If the note could not be written.

        """
        user_id = require_user(session)
        now = self.clock()
        note = Note(
            id=new_note_id(now),
            title=title,
            content=content,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        await self.remote_store.save(note)
        logger.info("Created note %s for user %s", note.id, user_id)
        return note

    async def get_note(self, session: AuthSession | None, note_id: str) -> Note:
        """Return one note.

        Raises:
            UnauthorizedError: If there is no session.
            NoteNotFoundError: If the note does not exist or cannot be read.

        """
        user_id = require_user(session)
        return await self._existing(user_id, note_id)

    async def list_notes(self, session: AuthSession | None) -> list[Note]:
        """Return all notes of the session user, most recently updated first."""
        user_id = require_user(session)
        return await self.remote_store.list_for_user(user_id)

    async def update_note(
        self,
        session: AuthSession | None,
        note_id: str,
        *,
        title: str | None = None,
        content: str | None = None,
    ) -> Note:
        """Overwrite title and/or content of an existing note."""
        user_id = require_user(session)
        existing = await self._existing(user_id, note_id)
        changes: dict[str, object] = {
            "updated_at": next_timestamp(existing.updated_at, self.clock()),
            "revision": existing.revision + 1,
        }
        if title is not None:
            changes["title"] = normalize_title(title)
        if content is not None:
            changes["content"] = content
        updated = existing.model_copy(update=changes)
        await self.remote_store.save(updated)
        return updated

    async def toggle_favorite(self, session: AuthSession | None, note_id: str) -> Note:
        """Flip the favorite flag of a note."""
        user_id = require_user(session)
        existing = await self._existing(user_id, note_id)
        updated = existing.model_copy(
            update={
                "is_favorite": not existing.is_favorite,
                "updated_at": next_timestamp(existing.updated_at, self.clock()),
                "revision": existing.revision + 1,
            },
        )
        await self.remote_store.save(updated)
        return updated

    async def delete_note(self, session: AuthSession | None, note_id: str) -> None:
        """Delete a note.

        Raises:
            NoteNotFoundError: If there was nothing to delete.
            RemoteStoreError: If the store failed.

        """
        user_id = require_user(session)
        safe_note_id = validate_id(note_id, "note_id")
        if not await self.remote_store.delete(user_id, safe_note_id):
            msg = f"Note {safe_note_id} not found"
            raise NoteNotFoundError(msg)
        logger.info("Deleted note %s for user %s", safe_note_id, user_id)

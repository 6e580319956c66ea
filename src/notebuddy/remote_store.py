"""Authoritative note persistence on top of the blob store."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from .blob_storage import BlobStore
from .config import DEFAULT_REMOTE_TIMEOUT_SECONDS, SyncConfig, get_remote_root
from .documents import decode_document, encode_note
from .errors import DecodeFailure, RemoteStoreError
from .utils import format_timestamp, parse_timestamp, validate_id

if TYPE_CHECKING:
    from collections.abc import Callable

    from .blob_storage import BlobInfo
    from .models import Note

logger = logging.getLogger(__name__)
R = TypeVar("R")

NOTES_PATH = "notes"
NOTE_SUFFIX = ".md"
METADATA_DATE_FIELDS = {"createdAt": "created_at", "updatedAt": "updated_at"}


def note_pathname(user_id: str, note_id: str) -> str:
    """Return the blob pathname of a note document."""
    safe_user_id = validate_id(user_id, "user_id")
    safe_note_id = validate_id(note_id, "note_id")
    return f"{NOTES_PATH}/{safe_user_id}/{safe_note_id}{NOTE_SUFFIX}"


def user_prefix(user_id: str) -> str:
    """Return the blob prefix holding every note of ``user_id``."""
    return f"{NOTES_PATH}/{validate_id(user_id, 'user_id')}/"


def _note_metadata(note: Note) -> dict[str, str]:
    return {
        "createdAt": format_timestamp(note.created_at),
        "updatedAt": format_timestamp(note.updated_at),
        "userId": note.user_id,
        "isFavorite": "true" if note.is_favorite else "false",
        "revision": str(note.revision),
    }


class RemoteNoteStore:
    """Reads and writes whole-note documents keyed by ``(user_id, note_id)``.

    Blob calls are blocking fsspec I/O; each runs in a worker thread and is
    bounded by ``timeout`` seconds. A call that times out keeps running in
    its thread; the next write to the same note waits for it to land.
    """

    def __init__(
        self,
        blobs: BlobStore,
        *,
        timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
    ) -> None:
        """Wrap ``blobs`` with note encoding and per-call timeouts."""
        self.blobs = blobs
        self.timeout = timeout
        self._writes: dict[str, asyncio.Future[BlobInfo]] = {}

    @classmethod
    def from_env(cls, config: SyncConfig | None = None) -> RemoteNoteStore:
        """Open the store at ``NOTEBUDDY_REMOTE_ROOT``."""
        config = config or SyncConfig.from_env()
        return cls(
            BlobStore(get_remote_root()),
            timeout=config.remote_timeout_seconds,
        )

    async def _call(self, func: Callable[..., R], *args: Any) -> R:  # noqa: ANN401
        return await asyncio.wait_for(asyncio.to_thread(func, *args), self.timeout)

    async def _put(
        self,
        pathname: str,
        document: str,
        metadata: dict[str, str],
    ) -> BlobInfo:
        """Write a blob after any earlier write to the same pathname has landed.

        The thread of a timed-out write keeps running; it is shielded from
        cancellation and tracked so a later write never lands before it.

        Raises:
            TimeoutError: If the earlier or the new write outlives ``timeout``.

        """
        while (previous := self._writes.get(pathname)) and not previous.done():
            logger.info("Waiting for an earlier write to %s", pathname)
            _, pending = await asyncio.wait({previous}, timeout=self.timeout)
            if pending:
                msg = f"Earlier write to {pathname} is still running"
                raise TimeoutError(msg)

        write = asyncio.ensure_future(
            asyncio.to_thread(self.blobs.put, pathname, document, metadata),
        )
        self._writes[pathname] = write
        write.add_done_callback(functools.partial(self._write_done, pathname))
        return await asyncio.wait_for(asyncio.shield(write), self.timeout)

    def _write_done(self, pathname: str, write: asyncio.Future[BlobInfo]) -> None:
        if self._writes.get(pathname) is write:
            del self._writes[pathname]
        if not write.cancelled() and (exc := write.exception()) is not None:
            logger.debug("Write to %s finished with %r", pathname, exc)

    async def _find(self, pathname: str) -> BlobInfo | None:
        blobs = await self._call(self.blobs.list, pathname)
        for blob in blobs:
            if blob.pathname == pathname:
                return blob
        return None

    async def _read(self, blob: BlobInfo) -> Note:
        """Fetch and decode ``blob``, applying its metadata dates.

        Raises:
            DecodeFailure: If the document body cannot be decoded.

        """
        body = await self._call(self.blobs.fetch, blob.url)
        decoded = decode_document(body)
        note = decoded.note

        updates: dict[str, Any] = {}
        if blob.metadata:
            for key, attr in METADATA_DATE_FIELDS.items():
                raw = blob.metadata.get(key)
                if not raw:
                    continue
                try:
                    updates[attr] = parse_timestamp(raw)
                except ValueError:
                    logger.warning(
                        "Ignoring invalid %s metadata on %s: %r",
                        key,
                        blob.pathname,
                        raw,
                    )
        elif blob.uploaded_at is not None:
            for key, attr in METADATA_DATE_FIELDS.items():
                if key in decoded.defaulted:
                    updates[attr] = blob.uploaded_at

        if updates:
            note = note.model_copy(update=updates)
        return note

    async def save(self, note: Note) -> str:
        """Encode and write ``note``, overwriting any previous document.

        Returns:
            The URL of the written document.

        Raises:
            RemoteStoreError: If the blob store rejects the write or times out.

        """
        pathname = note_pathname(note.user_id, note.id)
        document = encode_note(note)
        try:
            blob = await self._put(pathname, document, _note_metadata(note))
        except (OSError, TimeoutError) as exc:
            logger.exception("Error saving note %s to remote store", note.id)
            msg = f"Failed to save note {note.id}: {str(exc) or type(exc).__name__}"
            raise RemoteStoreError(msg) from exc
        return blob.url

    async def load(self, user_id: str, note_id: str) -> Note | None:
        """Return the stored note, or ``None`` if missing, unreachable or corrupt."""
        pathname = note_pathname(user_id, note_id)
        try:
            blob = await self._find(pathname)
            if blob is None:
                logger.info("No note found with path: %s", pathname)
                return None
            return await self._read(blob)
        except DecodeFailure as exc:
            logger.warning("Failed to decode note at %s: %s", pathname, exc)
            return None
        except (OSError, TimeoutError):
            logger.exception("Error fetching note %s from remote store", pathname)
            return None

    async def list_for_user(self, user_id: str) -> list[Note]:
        """Return every decodable note of ``user_id``, most recent first."""
        prefix = user_prefix(user_id)
        try:
            blobs = await self._call(self.blobs.list, prefix)
        except (OSError, TimeoutError):
            logger.exception("Error listing notes under %s", prefix)
            return []

        notes: list[Note] = []
        for blob in blobs:
            if not blob.pathname.endswith(NOTE_SUFFIX):
                continue
            try:
                notes.append(await self._read(blob))
            except DecodeFailure as exc:
                logger.warning("Skipping undecodable note %s: %s", blob.pathname, exc)
            except (OSError, TimeoutError) as exc:
                logger.warning("Skipping unreadable note %s: %s", blob.pathname, exc)

        notes.sort(key=lambda note: note.updated_at, reverse=True)
        return notes

    async def list_blobs(self, user_id: str) -> list[BlobInfo]:
        """Return the raw blob listing under the user's prefix."""
        return await self._call(self.blobs.list, user_prefix(user_id))

    async def fetch(self, url: str) -> str:
        """Return the raw body of a blob under this store."""
        return await self._call(self.blobs.fetch, url)

    async def delete(self, user_id: str, note_id: str) -> bool:
        """Delete the note document.

        Returns:
            True if a document existed and was removed, False if none existed.

        Raises:
            RemoteStoreError: If the blob store fails or times out.

        """
        pathname = note_pathname(user_id, note_id)
        try:
            blob = await self._find(pathname)
            if blob is None:
                return False
            await self._call(self.blobs.delete, blob.url)
        except (OSError, TimeoutError) as exc:
            logger.exception("Error deleting note %s from remote store", pathname)
            msg = f"Failed to delete note {note_id}: {str(exc) or type(exc).__name__}"
            raise RemoteStoreError(msg) from exc
        return True

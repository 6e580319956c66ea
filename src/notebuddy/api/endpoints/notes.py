"""Note endpoints."""

import logging
from collections.abc import Awaitable
from typing import Annotated, TypeVar

from fastapi import APIRouter, Header, HTTPException, Query, status

from notebuddy.api.schemas import MigrationReport, NoteCreate, NoteUpdate
from notebuddy.auth import AuthSession
from notebuddy.errors import NoteNotFoundError, RemoteStoreError, UnauthorizedError
from notebuddy.migrate import migrate_json_notes
from notebuddy.models import Note
from notebuddy.notes import NoteService
from notebuddy.remote_store import RemoteNoteStore
from notebuddy.search import DEFAULT_LIMIT, NoteSearchResult, search_notes

router = APIRouter()
logger = logging.getLogger(__name__)
R = TypeVar("R")

USER_HEADER = "X-NoteBuddy-User"

UserHeader = Annotated[str | None, Header(alias=USER_HEADER)]


def _session(user: str | None) -> AuthSession | None:
    return AuthSession(user) if user else None


def _remote_store() -> RemoteNoteStore:
    return RemoteNoteStore.from_env()


async def _guard(call: Awaitable[R]) -> R:
    """Await ``call`` and map domain errors to HTTP responses."""
    try:
        return await call
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        ) from e
    except NoteNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except RemoteStoreError as e:
        logger.exception("Remote store failure")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e


@router.post("/notes", status_code=status.HTTP_201_CREATED)
async def create_note_endpoint(payload: NoteCreate, user: UserHeader = None) -> Note:
    """Create a new note."""
    service = NoteService(_remote_store())
    return await _guard(
        service.create_note(
            _session(user),
            title=payload.title,
            content=payload.content,
        ),
    )


@router.get("/notes")
async def list_notes_endpoint(user: UserHeader = None) -> list[Note]:
    """List the user's notes, most recently updated first."""
    service = NoteService(_remote_store())
    return await _guard(service.list_notes(_session(user)))


@router.get("/notes/search")
async def search_notes_endpoint(
    q: Annotated[str, Query(description="Keywords to look for")] = "",
    limit: Annotated[int, Query(ge=1, le=100)] = DEFAULT_LIMIT,
    user: UserHeader = None,
) -> list[NoteSearchResult]:
    """Search the user's notes by keyword."""
    return await _guard(search_notes(_session(user), _remote_store(), q, limit))


@router.post("/notes/migrate")
async def migrate_notes_endpoint(user: UserHeader = None) -> MigrationReport:
    """Rewrite the user's legacy JSON notes as markdown documents."""
    result = await _guard(migrate_json_notes(_session(user), _remote_store()))
    return MigrationReport(
        migrated=result.migrated,
        failed=result.failed,
        message=result.message,
    )


@router.get("/notes/{note_id}")
async def get_note_endpoint(note_id: str, user: UserHeader = None) -> Note:
    """Get a note by ID."""
    service = NoteService(_remote_store())
    return await _guard(service.get_note(_session(user), note_id))


@router.put("/notes/{note_id}")
async def update_note_endpoint(
    note_id: str,
    payload: NoteUpdate,
    user: UserHeader = None,
) -> Note:
    """Update the title and/or content of a note."""
    service = NoteService(_remote_store())
    return await _guard(
        service.update_note(
            _session(user),
            note_id,
            title=payload.title,
            content=payload.content,
        ),
    )


@router.post("/notes/{note_id}/favorite")
async def favorite_note_endpoint(note_id: str, user: UserHeader = None) -> Note:
    """Toggle the favorite flag of a note."""
    service = NoteService(_remote_store())
    return await _guard(service.toggle_favorite(_session(user), note_id))


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note_endpoint(note_id: str, user: UserHeader = None) -> None:
    """Delete a note."""
    service = NoteService(_remote_store())
    await _guard(service.delete_note(_session(user), note_id))

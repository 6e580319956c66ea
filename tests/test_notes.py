"""Tests for server-side note management."""

import pytest

from conftest import BASE_TIME, FakeClock
from notebuddy.auth import AuthSession
from notebuddy.errors import NoteNotFoundError, UnauthorizedError
from notebuddy.notes import NoteService
from notebuddy.remote_store import RemoteNoteStore


@pytest.fixture
def service(remote_store: RemoteNoteStore, clock: FakeClock) -> NoteService:
    return NoteService(remote_store, clock=clock)


@pytest.mark.asyncio
async def test_create_and_get(service: NoteService, auth: AuthSession) -> None:
    note = await service.create_note(auth, title="Ideas", content="<p>one</p>")
    assert note.id.isdigit()
    assert note.user_id == "user-1"
    assert note.created_at == note.updated_at == BASE_TIME

    fetched = await service.get_note(auth, note.id)
    assert fetched.model_dump() == note.model_dump()


@pytest.mark.asyncio
async def test_list_is_most_recent_first(
    service: NoteService,
    auth: AuthSession,
    clock: FakeClock,
) -> None:
    first = await service.create_note(auth, title="first")
    clock.advance(1)
    second = await service.create_note(auth, title="second")

    notes = await service.list_notes(auth)
    assert [note.id for note in notes] == [second.id, first.id]


@pytest.mark.asyncio
async def test_update_note(
    service: NoteService,
    auth: AuthSession,
    clock: FakeClock,
) -> None:
    note = await service.create_note(auth, title="Draft", content="v1")
    clock.advance(30)

    updated = await service.update_note(auth, note.id, content="v2")
    assert updated.title == "Draft"
    assert updated.content == "v2"
    assert updated.revision == note.revision + 1
    assert updated.updated_at == clock.now
    assert updated.created_at == note.created_at

    renamed = await service.update_note(auth, note.id, title="")
    assert renamed.title == "Untitled"

    padded = await service.update_note(auth, note.id, title="  Final\ndraft ")
    fetched = await service.get_note(auth, note.id)
    assert padded.title == fetched.title == "Final draft"


@pytest.mark.asyncio
async def test_toggle_favorite(service: NoteService, auth: AuthSession) -> None:
    note = await service.create_note(auth)
    assert (await service.toggle_favorite(auth, note.id)).is_favorite is True
    assert (await service.toggle_favorite(auth, note.id)).is_favorite is False


@pytest.mark.asyncio
async def test_delete_note(service: NoteService, auth: AuthSession) -> None:
    note = await service.create_note(auth)
    await service.delete_note(auth, note.id)

    with pytest.raises(NoteNotFoundError):
        await service.get_note(auth, note.id)
    with pytest.raises(NoteNotFoundError):
        await service.delete_note(auth, note.id)


@pytest.mark.asyncio
async def test_other_users_notes_are_invisible(service: NoteService, auth: AuthSession) -> None:
    note = await service.create_note(auth)
    with pytest.raises(NoteNotFoundError):
        await service.get_note(AuthSession("user-2"), note.id)


@pytest.mark.asyncio
async def test_requires_session(service: NoteService) -> None:
    with pytest.raises(UnauthorizedError):
        await service.list_notes(None)
    with pytest.raises(UnauthorizedError):
        await service.create_note(None)


@pytest.mark.asyncio
async def test_rejects_unsafe_ids(service: NoteService, auth: AuthSession) -> None:
    with pytest.raises(ValueError, match="Invalid note_id"):
        await service.get_note(auth, "../../etc")

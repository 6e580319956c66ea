"""Tests for the command line interface."""

import asyncio
import re
from datetime import timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from notebuddy.blob_storage import BlobStore
from notebuddy.cli import app
from notebuddy.remote_store import RemoteNoteStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("NOTEBUDDY_REMOTE_ROOT", str(tmp_path / "remote"))
    monkeypatch.setenv("NOTEBUDDY_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.delenv("NOTEBUDDY_USER", raising=False)
    return tmp_path


def create(title: str, content: str) -> str:
    result = runner.invoke(
        app,
        ["--user", "user-1", "note", "create", "--title", title, "--content", content],
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    match = re.search(r"Note '(\d+)' created", result.output)
    assert match is not None
    return match.group(1)


def test_create_list_show() -> None:
    note_id = create("Groceries", "milk, eggs")

    listed = runner.invoke(app, ["--user", "user-1", "note", "list"])
    assert listed.exit_code == 0
    assert f"- {note_id}: Groceries" in listed.output

    shown = runner.invoke(app, ["--user", "user-1", "note", "show", note_id])
    assert shown.exit_code == 0
    assert "Groceries" in shown.output
    assert "milk, eggs" in shown.output


def test_user_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NOTEBUDDY_USER", "user-1")
    result = runner.invoke(app, ["note", "list"])
    assert result.exit_code == 0
    assert "No notes found." in result.output


def test_missing_user_is_unauthorized() -> None:
    result = runner.invoke(app, ["note", "list"])
    assert result.exit_code == 1
    assert "Unauthorized" in result.output


def test_show_missing_note() -> None:
    result = runner.invoke(app, ["--user", "user-1", "note", "show", "404"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_edit_and_favorite() -> None:
    note_id = create("Draft", "v1")

    edited = runner.invoke(
        app,
        ["--user", "user-1", "note", "edit", note_id, "--content", "v2"],
    )
    assert edited.exit_code == 0
    assert f"Note '{note_id}' saved." in edited.output

    favorite = runner.invoke(app, ["--user", "user-1", "note", "favorite", note_id])
    assert favorite.exit_code == 0
    assert "added to favorites" in favorite.output

    listed = runner.invoke(app, ["--user", "user-1", "note", "list"])
    assert f"- {note_id}: Draft *" in listed.output

    shown = runner.invoke(app, ["--user", "user-1", "note", "show", note_id])
    assert "v2" in shown.output


def test_delete() -> None:
    note_id = create("Temp", "bye")
    deleted = runner.invoke(app, ["--user", "user-1", "note", "delete", note_id])
    assert deleted.exit_code == 0
    assert f"Note '{note_id}' deleted." in deleted.output

    shown = runner.invoke(app, ["--user", "user-1", "note", "show", note_id])
    assert shown.exit_code == 1


def _edit_on_server(root: Path, note_id: str, content: str) -> None:
    store = RemoteNoteStore(BlobStore(root / "remote"))

    async def _edit() -> None:
        note = await store.load("user-1", note_id)
        assert note is not None
        await store.save(
            note.model_copy(
                update={
                    "content": content,
                    "updated_at": note.updated_at + timedelta(minutes=5),
                    "revision": note.revision + 1,
                },
            ),
        )

    asyncio.run(_edit())


def test_conflict_is_reported_and_resolved(cli_env: Path) -> None:
    note_id = create("Shared", "from this device")
    _edit_on_server(cli_env, note_id, "from another device")

    shown = runner.invoke(app, ["--user", "user-1", "note", "show", note_id])
    assert shown.exit_code == 2
    assert "Conflict detected" in shown.output
    assert "Local version:" in shown.output
    assert "Remote version:" in shown.output
    assert "Newer version: remote" in shown.output

    edit = runner.invoke(app, ["--user", "user-1", "note", "edit", note_id, "--content", "x"])
    assert edit.exit_code == 2

    resolved = runner.invoke(
        app,
        ["--user", "user-1", "note", "resolve", note_id, "--use", "remote"],
    )
    assert resolved.exit_code == 0
    assert "resolved using remote" in resolved.output

    shown = runner.invoke(app, ["--user", "user-1", "note", "show", note_id])
    assert shown.exit_code == 0
    assert "from another device" in shown.output


def test_resolve_by_merging(cli_env: Path) -> None:
    note_id = create("Shared", "mine")
    _edit_on_server(cli_env, note_id, "theirs")

    resolved = runner.invoke(
        app,
        ["--user", "user-1", "note", "resolve", note_id, "--use", "merge"],
    )
    assert resolved.exit_code == 0

    shown = runner.invoke(app, ["--user", "user-1", "note", "show", note_id])
    assert shown.exit_code == 0
    assert "## Local Version" in shown.output
    assert "mine" in shown.output
    assert "theirs" in shown.output


def test_resolve_without_conflict() -> None:
    note_id = create("Calm", "nothing to see")
    result = runner.invoke(
        app,
        ["--user", "user-1", "note", "resolve", note_id, "--use", "local"],
    )
    assert result.exit_code == 0
    assert "has no conflict" in result.output


def test_search() -> None:
    create("Garden plans", "tomatoes and basil")
    create("Shopping", "buy a hose")

    result = runner.invoke(app, ["--user", "user-1", "search", "garden"])
    assert result.exit_code == 0
    assert "Garden plans" in result.output
    assert "Shopping" not in result.output


def test_migrate_with_nothing_to_do() -> None:
    result = runner.invoke(app, ["--user", "user-1", "migrate"])
    assert result.exit_code == 0
    assert "No JSON notes found to migrate" in result.output


def test_settings() -> None:
    shown = runner.invoke(app, ["settings", "show"])
    assert shown.exit_code == 0
    assert "predictive typing: off" in shown.output

    updated = runner.invoke(app, ["settings", "set", "--predictive-typing"])
    assert updated.exit_code == 0
    assert "predictive typing: on" in updated.output
    assert "summary: off" in updated.output

    shown = runner.invoke(app, ["settings", "show"])
    assert "predictive typing: on" in shown.output

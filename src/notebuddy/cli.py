"""CLI entry point using Typer."""

import asyncio
from collections.abc import Callable, Coroutine
from enum import StrEnum
from functools import wraps
from typing import Annotated, Any, TypeVar

import typer

from notebuddy.auth import AuthSession
from notebuddy.config import SyncConfig
from notebuddy.errors import NoteNotFoundError, RemoteStoreError, UnauthorizedError
from notebuddy.local_cache import LocalCacheStore
from notebuddy.logging_utils import setup_logging
from notebuddy.migrate import migrate_json_notes
from notebuddy.models import Note
from notebuddy.notes import NoteService
from notebuddy.remote_store import RemoteNoteStore
from notebuddy.search import DEFAULT_LIMIT, search_notes
from notebuddy.settings import EditorSettings
from notebuddy.sync import NoteSynchronizer, OpenResult, OpenStatus
from notebuddy.utils import format_timestamp

R = TypeVar("R")

app = typer.Typer(help="NoteBuddy CLI - notes synced between this device and the server")
note_app = typer.Typer(help="Note management commands")
settings_app = typer.Typer(help="Editor settings stored on this device")

app.add_typer(note_app, name="note")
app.add_typer(settings_app, name="settings")

CONFLICT_EXIT_CODE = 2


class Choice(StrEnum):
    """Ways to settle a conflicted note."""

    LOCAL = "local"
    REMOTE = "remote"
    MERGE = "merge"


def handle_cli_errors(func: Callable[..., R]) -> Callable[..., R]:
    """Handle common CLI errors."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> R:  # noqa: ANN401
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except UnauthorizedError as e:
            typer.echo("Error: Unauthorized", err=True)
            raise typer.Exit(code=1) from e
        except (NoteNotFoundError, RemoteStoreError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1) from e
        except Exception as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1) from e

    return wrapper


def run(coro: Coroutine[Any, Any, R]) -> R:
    """Drive ``coro`` to completion on a fresh event loop."""
    return asyncio.run(coro)


def _session(ctx: typer.Context) -> AuthSession | None:
    user = (ctx.obj or {}).get("user")
    return AuthSession(user) if user else None


def _synchronizer() -> NoteSynchronizer:
    config = SyncConfig.from_env()
    return NoteSynchronizer(
        LocalCacheStore.from_env(),
        RemoteNoteStore.from_env(config),
        config=config,
    )


def _note_service() -> NoteService:
    return NoteService(RemoteNoteStore.from_env())


def _echo_note(note: Note) -> None:
    star = " *" if note.is_favorite else ""
    typer.echo(f"{note.title}{star}")
    typer.echo(f"id: {note.id}  updated: {format_timestamp(note.updated_at)}")
    typer.echo("")
    typer.echo(note.content)


def _echo_conflict(note_id: str, opened: OpenResult) -> None:
    report = opened.report
    typer.echo(f"Conflict detected for note '{note_id}'.")
    if report.local_note is not None:
        typer.echo(f"Local version:  {format_timestamp(report.local_note.updated_at)}")
    if report.remote_note is not None:
        typer.echo(f"Remote version: {format_timestamp(report.remote_note.updated_at)}")
    typer.echo(f"Newer version: {report.newer_version}")
    typer.echo("Run 'notebuddy note resolve' to choose a version.")


async def _open_for_edit(
    sync: NoteSynchronizer,
    session: AuthSession | None,
    note_id: str,
) -> Note:
    opened = await sync.open_note(session, note_id)
    if opened.status is OpenStatus.CONFLICT:
        _echo_conflict(note_id, opened)
        raise typer.Exit(code=CONFLICT_EXIT_CODE)
    if opened.note is None:
        msg = f"Note {note_id} not found"
        raise NoteNotFoundError(msg)
    return opened.note


@app.callback()
def main_callback(
    ctx: typer.Context,
    user: Annotated[
        str | None,
        typer.Option(envvar="NOTEBUDDY_USER", help="Signed-in user id"),
    ] = None,
) -> None:
    """NoteBuddy command line."""
    setup_logging()
    ctx.obj = {"user": user}


@note_app.command("create")
@handle_cli_errors
def cmd_note_create(
    ctx: typer.Context,
    title: Annotated[str, typer.Option(help="Title of the note")] = "",
    content: Annotated[str, typer.Option(help="Content of the note")] = "",
) -> None:
    """Create a new note on this device and upload it."""
    sync = _synchronizer()

    async def _create() -> Note:
        editing = await sync.create_note(_session(ctx), title=title, content=content)
        editing.close()
        return editing.note

    note = run(_create())
    typer.echo(f"Note '{note.id}' created successfully.")


@note_app.command("list")
@handle_cli_errors
def cmd_note_list(ctx: typer.Context) -> None:
    """List the user's notes, most recently updated first."""
    notes = run(_note_service().list_notes(_session(ctx)))
    if not notes:
        typer.echo("No notes found.")
        return
    for note in notes:
        star = " *" if note.is_favorite else ""
        typer.echo(f"- {note.id}: {note.title}{star}")


@note_app.command("show")
@handle_cli_errors
def cmd_note_show(
    ctx: typer.Context,
    note_id: Annotated[str, typer.Argument(help="ID of the note")],
) -> None:
    """Open a note, checking this device's copy against the server."""
    note = run(_open_for_edit(_synchronizer(), _session(ctx), note_id))
    _echo_note(note)


@note_app.command("edit")
@handle_cli_errors
def cmd_note_edit(
    ctx: typer.Context,
    note_id: Annotated[str, typer.Argument(help="ID of the note")],
    title: Annotated[str | None, typer.Option(help="New title")] = None,
    content: Annotated[str | None, typer.Option(help="New content")] = None,
) -> None:
    """Change the title and/or content of a note."""
    sync = _synchronizer()

    async def _edit() -> bool:
        note = await _open_for_edit(sync, _session(ctx), note_id)
        editing = sync.start_session(note)
        editing.edit(title=title, content=content)
        saved = await editing.save_now()
        editing.close()
        return saved

    if run(_edit()):
        typer.echo(f"Note '{note_id}' saved.")
    else:
        typer.echo(f"Note '{note_id}' saved on this device only.")


@note_app.command("favorite")
@handle_cli_errors
def cmd_note_favorite(
    ctx: typer.Context,
    note_id: Annotated[str, typer.Argument(help="ID of the note")],
) -> None:
    """Toggle the favorite flag of a note."""
    sync = _synchronizer()

    async def _toggle() -> Note:
        note = await _open_for_edit(sync, _session(ctx), note_id)
        editing = sync.start_session(note)
        editing.toggle_favorite()
        await editing.save_now()
        editing.close()
        return editing.note

    note = run(_toggle())
    state = "added to" if note.is_favorite else "removed from"
    typer.echo(f"Note '{note_id}' {state} favorites.")


@note_app.command("delete")
@handle_cli_errors
def cmd_note_delete(
    ctx: typer.Context,
    note_id: Annotated[str, typer.Argument(help="ID of the note")],
) -> None:
    """Delete a note from this device and from the server."""
    result = run(_synchronizer().delete_note(_session(ctx), note_id))
    if result.remote_error:
        typer.echo(f"Error: {result.remote_error}", err=True)
        raise typer.Exit(code=1)
    if result.remote_deleted:
        typer.echo(f"Note '{note_id}' deleted.")
    else:
        typer.echo(f"Note '{note_id}' was not on the server; local copy removed.")


@note_app.command("resolve")
@handle_cli_errors
def cmd_note_resolve(
    ctx: typer.Context,
    note_id: Annotated[str, typer.Argument(help="ID of the note")],
    choice: Annotated[
        Choice,
        typer.Option("--use", help="Keep the local or remote version, or merge"),
    ],
    content: Annotated[
        str | None,
        typer.Option(help="Merged content (defaults to both versions)"),
    ] = None,
) -> None:
    """Settle a conflict between this device and the server."""
    sync = _synchronizer()

    async def _resolve() -> bool | None:
        opened = await sync.open_note(_session(ctx), note_id)
        if opened.status is OpenStatus.NOT_FOUND:
            msg = f"Note {note_id} not found"
            raise NoteNotFoundError(msg)
        if opened.workflow is None:
            return None
        workflow = opened.workflow
        if choice is Choice.LOCAL:
            result = await workflow.use_local()
        elif choice is Choice.REMOTE:
            result = await workflow.use_remote()
        else:
            workflow.start_merge()
            if content is not None:
                workflow.edit_merge(content)
            result = await workflow.commit_merge()
        return result.remote_saved

    remote_saved = run(_resolve())
    if remote_saved is None:
        typer.echo(f"Note '{note_id}' has no conflict.")
    elif remote_saved:
        typer.echo(f"Note '{note_id}' resolved using {choice.value}.")
    else:
        typer.echo(f"Note '{note_id}' resolved on this device only.")


@app.command("search")
@handle_cli_errors
def cmd_search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Keywords to look for")],
    limit: Annotated[int, typer.Option(help="Maximum number of results")] = DEFAULT_LIMIT,
) -> None:
    """Search the user's notes by keyword."""
    results = run(
        search_notes(_session(ctx), RemoteNoteStore.from_env(), query, limit),
    )
    if not results:
        typer.echo("No notes found.")
        return
    for result in results:
        typer.echo(f"- {result.id}: {result.title} ({result.score:.2f})")
        if result.preview:
            typer.echo(f"    {result.preview}")


@app.command("migrate")
@handle_cli_errors
def cmd_migrate(ctx: typer.Context) -> None:
    """Rewrite legacy JSON notes as markdown documents."""
    result = run(migrate_json_notes(_session(ctx), RemoteNoteStore.from_env()))
    typer.echo(result.message)


def _echo_settings(settings: EditorSettings) -> None:
    typer.echo(f"predictive typing: {'on' if settings.predictive_typing_enabled else 'off'}")
    typer.echo(f"summary: {'on' if settings.summary_enabled else 'off'}")


@settings_app.command("show")
@handle_cli_errors
def cmd_settings_show() -> None:
    """Show the editor settings."""
    _echo_settings(EditorSettings.load(LocalCacheStore.from_env()))


@settings_app.command("set")
@handle_cli_errors
def cmd_settings_set(
    predictive_typing: Annotated[
        bool | None,
        typer.Option("--predictive-typing/--no-predictive-typing"),
    ] = None,
    summary: Annotated[bool | None, typer.Option("--summary/--no-summary")] = None,
) -> None:
    """Turn editor features on or off."""
    store = LocalCacheStore.from_env()
    settings = EditorSettings.load(store)
    if predictive_typing is not None and predictive_typing != settings.predictive_typing_enabled:
        settings = settings.toggle_predictive_typing()
    if summary is not None and summary != settings.summary_enabled:
        settings = settings.toggle_summary()
    if not settings.save(store):
        typer.echo("Error: settings could not be saved on this device", err=True)
        raise typer.Exit(code=1)
    _echo_settings(settings)


def main() -> None:
    """Entry point for the NoteBuddy CLI."""
    app()


if __name__ == "__main__":
    main()

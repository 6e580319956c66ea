"""Device-side orchestration: open, create, edit and delete notes.

Opening a note runs conflict detection exactly once; the reconciliation
policy then either hands back a note to edit or a resolution workflow for
the user to drive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from .auth import AuthSession, require_user
from .config import SyncConfig
from .conflicts import ConflictDetector, ReconcileOutcome, ReconciliationPolicy
from .errors import RemoteStoreError
from .models import ConflictReport, Note
from .notifications import Level, LoggingNotifier, Notifier
from .resolution import ManualResolutionWorkflow
from .session import EditingSession
from .settings import EditorSettings
from .utils import new_note_id, utcnow, validate_id

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from .local_cache import LocalCacheStore
    from .remote_store import RemoteNoteStore

logger = logging.getLogger(__name__)


class OpenStatus(StrEnum):
    """Result of opening a note."""

    READY = "ready"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


@dataclass
class OpenResult:
    """What the caller gets back from ``NoteSynchronizer.open_note``."""

    status: OpenStatus
    report: ConflictReport
    note: Note | None = None
    workflow: ManualResolutionWorkflow | None = None


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of deleting a note from both stores."""

    remote_deleted: bool
    remote_error: str | None = None


class NoteSynchronizer:
    """Keeps one device's cache and the remote store in step."""

    def __init__(  # noqa: PLR0913
        self,
        local_store: LocalCacheStore,
        remote_store: RemoteNoteStore,
        *,
        config: SyncConfig | None = None,
        notifier: Notifier | None = None,
        settings: EditorSettings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Wire the stores together with the given timing config."""
        self.local_store = local_store
        self.remote_store = remote_store
        self.config = config or SyncConfig()
        self.notifier = notifier or LoggingNotifier()
        self.settings = settings or EditorSettings.load(local_store)
        self.clock = clock
        self.detector = ConflictDetector(
            local_store,
            remote_store,
            tolerance_seconds=self.config.conflict_tolerance_seconds,
        )
        self.policy = ReconciliationPolicy()

    def new_workflow(self) -> ManualResolutionWorkflow:
        """Return a fresh resolution workflow bound to both stores."""
        return ManualResolutionWorkflow(
            self.local_store,
            self.remote_store,
            clock=self.clock,
        )

    async def open_note(self, session: AuthSession | None, note_id: str) -> OpenResult:
        """Detect conflicts for ``note_id`` and decide how to proceed."""
        user_id = require_user(session)
        safe_note_id = validate_id(note_id, "note_id")
        report = await self.detector.detect(user_id, safe_note_id)
        decision = self.policy.decide(report)

        if decision.outcome is ReconcileOutcome.NOT_FOUND:
            return OpenResult(OpenStatus.NOT_FOUND, report)

        if decision.outcome is ReconcileOutcome.ESCALATE:
            workflow = self.new_workflow()
            workflow.present(report)
            return OpenResult(OpenStatus.CONFLICT, report, workflow=workflow)

        note = decision.note
        if report.local_note is None and note is not None:
            # First open on this device: keep a copy for local-first editing.
            self.local_store.save(note)
        return OpenResult(OpenStatus.READY, report, note=note)

    def start_session(self, note: Note, *, is_new: bool = False) -> EditingSession:
        """Begin an editing session on ``note``."""
        return EditingSession(
            note,
            self.local_store,
            self.remote_store,
            settings=self.settings,
            notifier=self.notifier,
            debounce_seconds=self.config.debounce_seconds,
            clock=self.clock,
            is_new=is_new,
        )

    async def create_note(
        self,
        session: AuthSession | None,
        *,
        title: str = "",
        content: str = "",
    ) -> EditingSession:
        """Create a note, cache it, push it once, and start editing it."""
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
        self.local_store.save(note)
        editing = self.start_session(note, is_new=True)
        try:
            await self.remote_store.save(note)
        except RemoteStoreError as exc:
            logger.warning("New note %s kept on this device only: %s", note.id, exc)
            self.notifier.notify(
                Level.WARNING,
                "Saved on this device only",
                "The note could not be uploaded yet.",
            )
        return editing

    async def delete_note(self, session: AuthSession | None, note_id: str) -> DeleteResult:
        """Remove the note from this device and from the remote store.

        The local copy is always removed; a failed remote delete is reported
        and does not bring the local copy back.
        """
        user_id = require_user(session)
        safe_note_id = validate_id(note_id, "note_id")
        self.local_store.delete(safe_note_id)
        try:
            deleted = await self.remote_store.delete(user_id, safe_note_id)
        except RemoteStoreError as exc:
            self.notifier.notify(
                Level.ERROR,
                "Delete failed",
                "The note was removed from this device but not from the server.",
            )
            return DeleteResult(remote_deleted=False, remote_error=str(exc))
        return DeleteResult(remote_deleted=deleted)

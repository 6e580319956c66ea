"""Manual resolution of conflicting note versions.

The workflow is a small state machine::

    IDLE -> PRESENTING -> USING_LOCAL  -> RESOLVED
                       -> USING_REMOTE -> RESOLVED
                       -> MERGING      -> RESOLVED
                                       -> PRESENTING (merge abandoned)
                       -> CANCELLED

Reaching RESOLVED writes the chosen note to the device cache and to the
remote store. A failed remote write is reported in the result and is not
retried here; the editing session's debounced saves pick it up later.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from .errors import InvalidTransitionError, RemoteStoreError
from .utils import next_timestamp, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from .local_cache import LocalCacheStore
    from .models import ConflictReport, Note
    from .remote_store import RemoteNoteStore

logger = logging.getLogger(__name__)

MERGE_DATE_FORMAT = "%b %d, %Y %H:%M:%S"


class ResolutionState(StrEnum):
    """States of the manual resolution workflow."""

    IDLE = "idle"
    PRESENTING = "presenting"
    USING_LOCAL = "using_local"
    USING_REMOTE = "using_remote"
    MERGING = "merging"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ResolutionResult:
    """The resolved note and how far it got written."""

    note: Note
    local_saved: bool
    remote_saved: bool
    remote_error: str | None = None

    @property
    def saved_locally_only(self) -> bool:
        """True when the remote write failed but the device cache holds the note."""
        return self.local_saved and not self.remote_saved


def build_merge_text(local: Note, remote: Note) -> str:
    """Seed the merge editor with both versions under labeled headers."""
    local_stamp = local.updated_at.strftime(MERGE_DATE_FORMAT)
    remote_stamp = remote.updated_at.strftime(MERGE_DATE_FORMAT)
    return (
        f"# {local.title}\n"
        "\n"
        f"## Local Version ({local_stamp})\n"
        f"{local.content}\n"
        "\n"
        f"## Remote Version ({remote_stamp})\n"
        f"{remote.content}\n"
    )


class ManualResolutionWorkflow:
    """Presents two versions of a note and writes back the user's choice."""

    def __init__(
        self,
        local_store: LocalCacheStore,
        remote_store: RemoteNoteStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Resolve into ``local_store`` and ``remote_store``."""
        self.local_store = local_store
        self.remote_store = remote_store
        self.clock = clock
        self.state = ResolutionState.IDLE
        self.local_note: Note | None = None
        self.remote_note: Note | None = None
        self.merge_text = ""
        self.result: ResolutionResult | None = None

    def _require(self, *states: ResolutionState) -> None:
        if self.state not in states:
            allowed = ", ".join(state.value for state in states)
            msg = f"Cannot do that while {self.state.value}; expected {allowed}"
            raise InvalidTransitionError(msg)

    def _pair(self) -> tuple[Note, Note]:
        if self.local_note is None or self.remote_note is None:
            msg = "Both versions are required"
            raise InvalidTransitionError(msg)
        return self.local_note, self.remote_note

    def present(self, report: ConflictReport) -> None:
        """Show both sides of ``report``."""
        self._require(ResolutionState.IDLE)
        if report.local_note is None or report.remote_note is None:
            msg = "A conflict needs both a local and a remote version"
            raise InvalidTransitionError(msg)
        self.local_note = report.local_note
        self.remote_note = report.remote_note
        self.state = ResolutionState.PRESENTING

    async def use_local(self) -> ResolutionResult:
        """Keep the device copy verbatim."""
        self._require(ResolutionState.PRESENTING)
        local, _ = self._pair()
        self.state = ResolutionState.USING_LOCAL
        return await self._resolve(local)

    async def use_remote(self) -> ResolutionResult:
        """Keep the server copy verbatim."""
        self._require(ResolutionState.PRESENTING)
        _, remote = self._pair()
        self.state = ResolutionState.USING_REMOTE
        return await self._resolve(remote)

    def start_merge(self) -> str:
        """Enter the merge editor and return its seeded text."""
        self._require(ResolutionState.PRESENTING)
        local, remote = self._pair()
        self.merge_text = build_merge_text(local, remote)
        self.state = ResolutionState.MERGING
        return self.merge_text

    def edit_merge(self, text: str) -> None:
        """Replace the merge editor's text."""
        self._require(ResolutionState.MERGING)
        self.merge_text = text

    def abandon_merge(self) -> None:
        """Leave the merge editor and go back to the two versions."""
        self._require(ResolutionState.MERGING)
        self.merge_text = ""
        self.state = ResolutionState.PRESENTING

    async def commit_merge(self) -> ResolutionResult:
        """Resolve with the merged text under the local title."""
        self._require(ResolutionState.MERGING)
        local, remote = self._pair()
        latest = max(local.updated_at, remote.updated_at)
        merged = local.model_copy(
            update={
                "content": self.merge_text,
                "updated_at": next_timestamp(latest, self.clock()),
                "revision": max(local.revision, remote.revision) + 1,
            },
        )
        return await self._resolve(merged)

    def cancel(self) -> None:
        """Abort without producing a note."""
        self._require(ResolutionState.PRESENTING, ResolutionState.MERGING)
        self.state = ResolutionState.CANCELLED
        logger.info("Conflict resolution cancelled")

    async def _resolve(self, note: Note) -> ResolutionResult:
        local_saved = self.local_store.save(note)
        if not local_saved:
            logger.warning("Resolved note %s was not cached locally", note.id)

        remote_error = None
        try:
            await self.remote_store.save(note)
        except RemoteStoreError as exc:
            remote_error = str(exc)
            logger.warning("Resolved note %s saved locally only: %s", note.id, exc)

        self.result = ResolutionResult(
            note=note,
            local_saved=local_saved,
            remote_saved=remote_error is None,
            remote_error=remote_error,
        )
        self.state = ResolutionState.RESOLVED
        return self.result

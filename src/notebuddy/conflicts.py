"""Conflict detection between the device cache and the remote store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from .config import DEFAULT_CONFLICT_TOLERANCE_SECONDS
from .models import ConflictReport, Note, Side

if TYPE_CHECKING:
    from .local_cache import LocalCacheStore
    from .remote_store import RemoteNoteStore

logger = logging.getLogger(__name__)


def newer_side(local: Note, remote: Note) -> Side:
    """Return which copy is newer.

    ``updated_at`` decides; exact ties fall back to the revision counter and
    then to the remote copy.
    """
    if local.updated_at != remote.updated_at:
        return "local" if local.updated_at > remote.updated_at else "remote"
    return "local" if local.revision > remote.revision else "remote"


def compare_notes(
    local: Note | None,
    remote: Note | None,
    tolerance: timedelta,
) -> ConflictReport:
    """Classify a pair of copies of the same note.

    A conflict needs both diverged content and an ``updated_at`` gap strictly
    wider than ``tolerance``. A single present copy never conflicts.
    """
    if local is None or remote is None:
        present: Side | None = None
        if local is not None:
            present = "local"
        elif remote is not None:
            present = "remote"
        return ConflictReport(
            has_conflict=False,
            local_note=local,
            remote_note=remote,
            newer_version=present,
        )

    gap = abs(local.updated_at - remote.updated_at)
    has_conflict = gap > tolerance and local.content != remote.content
    return ConflictReport(
        has_conflict=has_conflict,
        local_note=local,
        remote_note=remote,
        newer_version=newer_side(local, remote),
    )


class ConflictDetector:
    """Reads both stores once and reports how they relate."""

    def __init__(
        self,
        local: LocalCacheStore,
        remote: RemoteNoteStore,
        *,
        tolerance_seconds: float = DEFAULT_CONFLICT_TOLERANCE_SECONDS,
    ) -> None:
        """Compare ``local`` against ``remote`` with the given tolerance."""
        self.local = local
        self.remote = remote
        self.tolerance = timedelta(seconds=tolerance_seconds)

    def _read_local(self, note_id: str) -> Note | None:
        if not self.local.is_available():
            return None
        try:
            return self.local.load(note_id)
        except Exception:
            logger.exception("Error reading note %s from local cache", note_id)
            return None

    async def _read_remote(self, user_id: str, note_id: str) -> Note | None:
        try:
            return await self.remote.load(user_id, note_id)
        except Exception:
            logger.exception("Error reading note %s from remote store", note_id)
            return None

    async def detect(self, user_id: str, note_id: str) -> ConflictReport:
        """Return the conflict report for ``note_id`` owned by ``user_id``."""
        local_note = self._read_local(note_id)
        remote_note = await self._read_remote(user_id, note_id)
        report = compare_notes(local_note, remote_note, self.tolerance)
        if report.has_conflict:
            logger.info(
                "Conflict detected for note %s (newer: %s)",
                note_id,
                report.newer_version,
            )
        return report


class ReconcileOutcome(StrEnum):
    """What the caller should do with a conflict report."""

    USE_NOTE = "use_note"
    NOT_FOUND = "not_found"
    ESCALATE = "escalate"


@dataclass(frozen=True)
class Reconciliation:
    """Decision produced by ``ReconciliationPolicy``."""

    outcome: ReconcileOutcome
    note: Note | None = None
    report: ConflictReport | None = None


class ReconciliationPolicy:
    """Decides between automatic use and manual resolution.

    Diverged content is never resolved by timestamp alone: the user always
    gets to see both versions first.
    """

    def decide(self, report: ConflictReport) -> Reconciliation:
        """Map ``report`` to an outcome."""
        if report.has_conflict:
            return Reconciliation(ReconcileOutcome.ESCALATE, report=report)
        note = report.local_note or report.remote_note
        if note is None:
            return Reconciliation(ReconcileOutcome.NOT_FOUND, report=report)
        return Reconciliation(ReconcileOutcome.USE_NOTE, note=note, report=report)

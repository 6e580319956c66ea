"""Re-encode legacy JSON note documents in the markdown format."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .auth import AuthSession, require_user
from .errors import RemoteStoreError
from .models import Note

if TYPE_CHECKING:
    from .remote_store import RemoteNoteStore

logger = logging.getLogger(__name__)

LEGACY_SUFFIX = ".json"


@dataclass(frozen=True)
class MigrationResult:
    """Counts from one migration run."""

    migrated: int = 0
    failed: int = 0

    @property
    def message(self) -> str:
        """Human readable summary."""
        if not self.migrated and not self.failed:
            return "No JSON notes found to migrate"
        return (
            f"Migration completed. {self.migrated} notes migrated, "
            f"{self.failed} failed."
        )


async def migrate_json_notes(
    session: AuthSession | None,
    remote_store: RemoteNoteStore,
) -> MigrationResult:
    """Rewrite every ``.json`` note of the session user as a markdown document.

    The legacy documents are left in place. A note that cannot be fetched,
    parsed, or written counts as failed and does not stop the run.

    Raises:
        UnauthorizedError: If there is no session.
        RemoteStoreError: If the user's documents cannot be listed.

    """
    user_id = require_user(session)
    try:
        blobs = await remote_store.list_blobs(user_id)
    except (OSError, TimeoutError) as exc:
        msg = f"Failed to migrate notes: {str(exc) or type(exc).__name__}"
        raise RemoteStoreError(msg) from exc

    migrated = 0
    failed = 0
    for blob in blobs:
        if not blob.pathname.endswith(LEGACY_SUFFIX):
            continue
        try:
            body = await remote_store.fetch(blob.url)
            note = Note.model_validate(json.loads(body))
            # Notes always land under the migrating user's prefix.
            note = note.model_copy(update={"user_id": user_id})
            await remote_store.save(note)
        except (
            json.JSONDecodeError,
            ValidationError,
            OSError,
            TimeoutError,
            RemoteStoreError,
        ) as exc:
            logger.error("Error migrating note %s: %s", blob.url, exc)  # noqa: TRY400
            failed += 1
            continue
        migrated += 1

    result = MigrationResult(migrated=migrated, failed=failed)
    logger.info("%s (user %s)", result.message, user_id)
    return result

"""NoteBuddy note synchronization package."""

from .auth import AuthSession, require_user
from .blob_storage import BlobInfo, BlobStore
from .config import SyncConfig
from .conflicts import (
    ConflictDetector,
    ReconcileOutcome,
    ReconciliationPolicy,
    compare_notes,
    newer_side,
)
from .documents import decode_note, encode_note
from .errors import (
    DecodeFailure,
    InvalidTransitionError,
    NoteNotFoundError,
    RemoteStoreError,
    UnauthorizedError,
)
from .local_cache import LocalCacheStore
from .migrate import MigrationResult, migrate_json_notes
from .models import ConflictReport, Note
from .notes import NoteService
from .remote_store import RemoteNoteStore
from .resolution import ManualResolutionWorkflow, ResolutionResult, ResolutionState
from .search import NoteSearchResult, search_notes
from .session import EditingSession, SaveStatus
from .settings import EditorSettings
from .sync import NoteSynchronizer, OpenResult, OpenStatus

__all__ = [
    "AuthSession",
    "BlobInfo",
    "BlobStore",
    "ConflictDetector",
    "ConflictReport",
    "DecodeFailure",
    "EditingSession",
    "EditorSettings",
    "InvalidTransitionError",
    "LocalCacheStore",
    "ManualResolutionWorkflow",
    "MigrationResult",
    "Note",
    "NoteNotFoundError",
    "NoteSearchResult",
    "NoteService",
    "NoteSynchronizer",
    "OpenResult",
    "OpenStatus",
    "ReconcileOutcome",
    "ReconciliationPolicy",
    "RemoteNoteStore",
    "RemoteStoreError",
    "ResolutionResult",
    "ResolutionState",
    "SaveStatus",
    "SyncConfig",
    "UnauthorizedError",
    "compare_notes",
    "decode_note",
    "encode_note",
    "migrate_json_notes",
    "newer_side",
    "require_user",
    "search_notes",
]

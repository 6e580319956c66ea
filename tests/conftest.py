"""Test configuration and fixtures."""

import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import fsspec
import pytest

from notebuddy.auth import AuthSession
from notebuddy.blob_storage import BlobInfo, BlobStore
from notebuddy.local_cache import LocalCacheStore
from notebuddy.models import Note
from notebuddy.notifications import RecordingNotifier
from notebuddy.remote_store import RemoteNoteStore

BASE_TIME = datetime(2024, 6, 10, 6, 13, 20, tzinfo=UTC)
USER_ID = "user-1"
NOTE_ID = "1718000000000"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FailingBlobStore(BlobStore):
    """Blob store whose writes and deletes always fail."""

    def put(
        self,
        pathname: str,
        body: str,
        metadata: dict[str, str] | None = None,
    ) -> BlobInfo:
        msg = "blob store unreachable"
        raise ConnectionError(msg)

    def delete(self, url: str) -> None:
        msg = "blob store unreachable"
        raise ConnectionError(msg)


class SlowBlobStore(BlobStore):
    """Blob store that stalls every write."""

    delay = 0.5

    def put(
        self,
        pathname: str,
        body: str,
        metadata: dict[str, str] | None = None,
    ) -> BlobInfo:
        time.sleep(self.delay)
        return super().put(pathname, body, metadata)


class SlowFirstPutBlobStore(BlobStore):
    """Blob store whose first write stalls; later writes go straight through."""

    delay = 0.4

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.puts = 0

    def put(
        self,
        pathname: str,
        body: str,
        metadata: dict[str, str] | None = None,
    ) -> BlobInfo:
        self.puts += 1
        if self.puts == 1:
            time.sleep(self.delay)
        return super().put(pathname, body, metadata)


@pytest.fixture(params=["file"])
def fs_impl(
    request: pytest.FixtureRequest,
    tmp_path: Path,
) -> tuple[fsspec.AbstractFileSystem, str]:
    """Provide an fsspec filesystem and a root path on it."""
    if request.param == "file":
        return fsspec.filesystem("file"), str(tmp_path / "blobs")
    msg = f"Unsupported protocol: {request.param}"
    raise ValueError(msg)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth() -> AuthSession:
    return AuthSession(USER_ID)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def blob_store(fs_impl: tuple[fsspec.AbstractFileSystem, str]) -> BlobStore:
    fs, root = fs_impl
    return BlobStore(root, fs=fs)


@pytest.fixture
def remote_store(blob_store: BlobStore) -> RemoteNoteStore:
    return RemoteNoteStore(blob_store, timeout=2.0)


@pytest.fixture
def failing_remote_store(tmp_path: Path) -> RemoteNoteStore:
    return RemoteNoteStore(FailingBlobStore(tmp_path / "failing-blobs"), timeout=2.0)


@pytest.fixture
def local_store(tmp_path: Path) -> LocalCacheStore:
    return LocalCacheStore(tmp_path / "cache")


@pytest.fixture
def make_note() -> Callable[..., Note]:
    """Build notes with sensible defaults."""

    def _make(**overrides: Any) -> Note:
        fields: dict[str, Any] = {
            "id": NOTE_ID,
            "title": "Groceries",
            "content": "<p>milk, eggs</p>",
            "user_id": USER_ID,
            "created_at": BASE_TIME,
            "updated_at": BASE_TIME,
        }
        fields.update(overrides)
        return Note(**fields)

    return _make

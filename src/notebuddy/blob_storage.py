"""Blob storage primitives implemented via fsspec.

The remote note store only needs four operations from its object store:
``put``, ``list``, ``fetch`` and ``delete``. ``BlobStore`` provides them on
top of any fsspec filesystem, so the same code runs against a local
directory, ``memory://`` in tests, or an object store such as ``s3://``.

Per-blob metadata is kept in a sidecar JSON tree under ``.metadata/`` that
mirrors the blob paths, alongside the upload time recorded at ``put``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from .utils import (
    format_timestamp,
    fs_exists,
    fs_join,
    fs_read_json,
    fs_read_text,
    fs_write_json,
    fs_write_text,
    get_fs_and_path,
    parse_timestamp,
    utcnow,
)

if TYPE_CHECKING:
    from pathlib import Path

    import fsspec

logger = logging.getLogger(__name__)

METADATA_DIR = ".metadata"
METADATA_SUFFIX = ".json"


@dataclass
class BlobInfo:
    """Description of a stored blob as returned by ``put`` and ``list``."""

    url: str
    pathname: str
    metadata: dict[str, str] = field(default_factory=dict)
    uploaded_at: datetime | None = None


class BlobStore:
    """Path-addressed blob store rooted at ``root``."""

    def __init__(
        self,
        root: str | Path,
        *,
        fs: fsspec.AbstractFileSystem | None = None,
    ) -> None:
        """Bind the store to ``root`` on ``fs`` (inferred from ``root`` if omitted)."""
        self.fs, self.root = get_fs_and_path(root, fs)

    def _blob_path(self, pathname: str) -> str:
        return fs_join(self.root, pathname)

    def _metadata_path(self, pathname: str) -> str:
        return fs_join(self.root, METADATA_DIR, pathname + METADATA_SUFFIX)

    def _pathname(self, full_path: str) -> str:
        stripped = self.fs._strip_protocol(full_path)  # noqa: SLF001
        return stripped[len(self.root) :].lstrip("/")

    def _url(self, pathname: str) -> str:
        return self.fs.unstrip_protocol(self._blob_path(pathname))

    def _read_sidecar(self, pathname: str) -> tuple[dict[str, str], datetime | None]:
        meta_path = self._metadata_path(pathname)
        if not fs_exists(self.fs, meta_path):
            return {}, None
        try:
            sidecar = fs_read_json(self.fs, meta_path)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Could not read blob metadata at %s: %s", meta_path, exc)
            return {}, None

        uploaded_at = None
        raw_uploaded = sidecar.get("uploadedAt")
        if raw_uploaded:
            try:
                uploaded_at = parse_timestamp(raw_uploaded)
            except ValueError:
                logger.warning("Invalid uploadedAt in %s: %r", meta_path, raw_uploaded)
        metadata = sidecar.get("metadata") or {}
        return {str(k): str(v) for k, v in metadata.items()}, uploaded_at

    def put(
        self,
        pathname: str,
        body: str,
        metadata: dict[str, str] | None = None,
    ) -> BlobInfo:
        """Write ``body`` at ``pathname``, replacing any existing blob."""
        uploaded_at = utcnow()
        fs_write_text(self.fs, self._blob_path(pathname), body)
        fs_write_json(
            self.fs,
            self._metadata_path(pathname),
            {
                "metadata": dict(metadata or {}),
                "uploadedAt": format_timestamp(uploaded_at),
            },
        )
        return BlobInfo(
            url=self._url(pathname),
            pathname=pathname,
            metadata=dict(metadata or {}),
            uploaded_at=uploaded_at,
        )

    def list(self, prefix: str = "") -> list[BlobInfo]:
        """Return every blob whose pathname starts with ``prefix``."""
        if not fs_exists(self.fs, self.root):
            return []
        directory, _, _ = prefix.rpartition("/")
        search_root = fs_join(self.root, directory) if directory else self.root
        if not fs_exists(self.fs, search_root):
            return []

        blobs: list[BlobInfo] = []
        for full_path in sorted(self.fs.find(search_root)):
            pathname = self._pathname(full_path)
            if pathname.startswith(METADATA_DIR + "/"):
                continue
            if not pathname.startswith(prefix):
                continue
            metadata, uploaded_at = self._read_sidecar(pathname)
            blobs.append(
                BlobInfo(
                    url=self._url(pathname),
                    pathname=pathname,
                    metadata=metadata,
                    uploaded_at=uploaded_at,
                ),
            )
        return blobs

    def fetch(self, url: str) -> str:
        """Return the body of the blob at ``url``.

        Raises:
            FileNotFoundError: If the blob does not exist.

        """
        return fs_read_text(self.fs, url)

    def delete(self, url: str) -> None:
        """Remove the blob at ``url`` together with its metadata."""
        pathname = self._pathname(url)
        self.fs.rm(self._blob_path(pathname))
        meta_path = self._metadata_path(pathname)
        if fs_exists(self.fs, meta_path):
            self.fs.rm(meta_path)

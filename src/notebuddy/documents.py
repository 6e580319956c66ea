"""Encode notes as frontmatter documents and decode them back.

A remote note document looks like::

    ---
    id: 1718000000000
    title: Groceries
    userId: user-1
    createdAt: 2024-06-10T06:13:20.000Z
    updatedAt: 2024-06-10T06:15:02.120Z
    isFavorite: false
    revision: 4
    ---

    <content, verbatim>

Header lines are ``key: value`` pairs split on the first colon. The header is
deliberately not parsed as YAML: titles such as ``true`` or ``12:30`` must
survive unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .errors import DecodeFailure
from .models import DEFAULT_TITLE, Note
from .utils import format_timestamp, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---"
DATE_FIELDS = ("createdAt", "updatedAt")


@dataclass
class DecodedDocument:
    """A decoded note plus the header fields that had to be defaulted."""

    note: Note
    defaulted: set[str] = field(default_factory=set)


def _header_value(value: str) -> str:
    return " ".join(value.splitlines()).strip()


def encode_note(note: Note) -> str:
    """Render ``note`` as a frontmatter document."""
    lines = [
        FRONTMATTER_DELIMITER,
        f"id: {note.id}",
        f"title: {_header_value(note.title)}",
        f"userId: {note.user_id}",
        f"createdAt: {format_timestamp(note.created_at)}",
        f"updatedAt: {format_timestamp(note.updated_at)}",
        f"isFavorite: {'true' if note.is_favorite else 'false'}",
        f"revision: {note.revision}",
    ]
    if note.has_file_context:
        lines.append("hasFileContext: true")
    lines.extend([FRONTMATTER_DELIMITER, "", note.content])
    return "\n".join(lines)


def _split_document(document: str) -> tuple[list[str], str]:
    """Return the header lines and the raw body of ``document``.

    Raises:
        DecodeFailure: If the header is missing or never closed.

    """
    if not document.startswith(FRONTMATTER_DELIMITER):
        msg = "Invalid note document: missing frontmatter"
        raise DecodeFailure(msg)

    first_newline = document.find("\n")
    if first_newline == -1 or document[:first_newline].strip() != FRONTMATTER_DELIMITER:
        msg = "Invalid note document: malformed opening delimiter"
        raise DecodeFailure(msg)

    header: list[str] = []
    cursor = first_newline + 1
    while cursor <= len(document):
        end = document.find("\n", cursor)
        line = document[cursor:] if end == -1 else document[cursor:end]
        if line.rstrip("\r") == FRONTMATTER_DELIMITER:
            body = "" if end == -1 else document[end + 1 :]
            # One blank separator line follows the closing delimiter.
            if body.startswith("\n"):
                body = body[1:]
            return header, body
        header.append(line)
        if end == -1:
            break
        cursor = end + 1

    msg = "Invalid note document: unclosed frontmatter"
    raise DecodeFailure(msg)


def _parse_header(lines: list[str]) -> dict[str, str]:
    metadata: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        key = key.strip()
        value = value.strip()
        if not sep or not key or not value:
            if line.strip():
                logger.debug("Skipping malformed header line: %r", line)
            continue
        metadata[key] = value
    return metadata


def _parse_date(metadata: dict[str, str], key: str, now: datetime) -> datetime | None:
    raw = metadata.get(key)
    if raw is None:
        return None
    try:
        return parse_timestamp(raw)
    except ValueError:
        logger.warning("Unparseable %s %r in note header; using current time", key, raw)
        return now


def decode_document(document: str) -> DecodedDocument:
    """Decode a frontmatter document.

    Missing fields fall back to defaults; their header keys are reported in
    ``DecodedDocument.defaulted`` so callers can fill them from elsewhere.

    Raises:
        DecodeFailure: If the document has no (closed) frontmatter header.

    """
    header_lines, body = _split_document(document)
    metadata = _parse_header(header_lines)
    now = utcnow()
    defaulted: set[str] = set()

    dates: dict[str, datetime] = {}
    for key in DATE_FIELDS:
        parsed = _parse_date(metadata, key, now)
        if parsed is None:
            defaulted.add(key)
            parsed = now
        dates[key] = parsed

    try:
        revision = int(metadata.get("revision", "0"))
    except ValueError:
        logger.warning("Unparseable revision %r in note header", metadata["revision"])
        revision = 0

    note = Note(
        id=metadata.get("id", ""),
        title=metadata.get("title", DEFAULT_TITLE),
        content=body,
        user_id=metadata.get("userId", ""),
        created_at=dates["createdAt"],
        updated_at=dates["updatedAt"],
        is_favorite=metadata.get("isFavorite") == "true",
        has_file_context=metadata.get("hasFileContext") == "true",
        revision=revision,
    )
    return DecodedDocument(note=note, defaulted=defaulted)


def decode_note(document: str) -> Note | None:
    """Decode ``document``, returning ``None`` (and logging) on failure."""
    try:
        return decode_document(document).note
    except DecodeFailure as exc:
        logger.warning("Failed to decode note document: %s", exc)
        return None

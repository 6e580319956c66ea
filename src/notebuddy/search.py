"""Fuzzy keyword search over a user's notes."""

from __future__ import annotations

import re
from datetime import datetime
from difflib import SequenceMatcher
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .auth import AuthSession, require_user

if TYPE_CHECKING:
    from .models import Note
    from .remote_store import RemoteNoteStore

TAG_PATTERN = re.compile(r"<[^>]*>")
WORD_PATTERN = re.compile(r"\w+")
TITLE_WEIGHT = 2
CONTENT_WEIGHT = 1
PREVIEW_CONTEXT = 60
PREVIEW_FALLBACK_LENGTH = 150
DEFAULT_LIMIT = 20
MIN_TOKEN_LENGTH = 2
# Similarity a word needs to count as a match; 1.0 is an exact hit.
MATCH_THRESHOLD = 0.6


class NoteSearchResult(BaseModel):
    """One ranked hit, with a plain-text preview around the first match."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    preview: str
    updated_at: datetime = Field(alias="updatedAt")
    is_favorite: bool = Field(alias="isFavorite")
    score: float


def strip_tags(content: str) -> str:
    """Remove HTML tags from editor content."""
    return TAG_PATTERN.sub("", content)


def _tokens(query: str) -> list[str]:
    return [token for token in query.lower().split() if len(token) >= MIN_TOKEN_LENGTH]


def match_token(token: str, text: str) -> tuple[float, int, int]:
    """Return ``(similarity, start, length)`` of the closest match in ``text``.

    A substring hit scores 1.0. Otherwise every word of ``text`` is compared
    with ``token`` and the most similar one wins. ``start`` is -1 when
    ``text`` has no words.
    """
    lowered = text.lower()
    index = lowered.find(token)
    if index != -1:
        return 1.0, index, len(token)

    best = (0.0, -1, 0)
    for word in WORD_PATTERN.finditer(lowered):
        similarity = SequenceMatcher(None, token, word.group()).ratio()
        if similarity > best[0]:
            best = (similarity, word.start(), len(word.group()))
    return best


def build_preview(text: str, tokens: list[str]) -> str:
    """Cut a window of ``text`` around the earliest token match.

    Without a match the beginning of ``text`` is used instead.
    """
    hits = [
        (start, length)
        for token in tokens
        for similarity, start, length in [match_token(token, text)]
        if similarity >= MATCH_THRESHOLD
    ]
    if not hits:
        preview = text[:PREVIEW_FALLBACK_LENGTH]
        return preview + "..." if len(text) > PREVIEW_FALLBACK_LENGTH else preview

    index, length = min(hits)
    start = max(0, index - PREVIEW_CONTEXT)
    end = min(len(text), index + length + PREVIEW_CONTEXT)
    preview = text[start:end]
    if start > 0:
        preview = "..." + preview
    if end < len(text):
        preview += "..."
    return preview


def score_note(note: Note, tokens: list[str]) -> float:
    """Return a 0-1 relevance score; title matches count double.

    Each token contributes the similarity of its closest match in a field,
    provided it reaches ``MATCH_THRESHOLD``, so misspellings still match.
    """
    if not tokens:
        return 0.0
    content = strip_tags(note.content)
    total = 0.0
    for token in tokens:
        for text, weight in ((note.title, TITLE_WEIGHT), (content, CONTENT_WEIGHT)):
            similarity = match_token(token, text)[0]
            if similarity >= MATCH_THRESHOLD:
                total += weight * similarity
    return total / ((TITLE_WEIGHT + CONTENT_WEIGHT) * len(tokens))


def rank_notes(
    notes: list[Note],
    query: str,
    limit: int = DEFAULT_LIMIT,
) -> list[NoteSearchResult]:
    """Score ``notes`` against ``query`` and return the best ``limit`` hits."""
    tokens = _tokens(query)
    if not tokens or limit <= 0:
        return []

    results: list[NoteSearchResult] = []
    for note in notes:
        score = score_note(note, tokens)
        if score <= 0:
            continue
        results.append(
            NoteSearchResult(
                id=note.id,
                title=note.title,
                preview=build_preview(strip_tags(note.content), tokens),
                updated_at=note.updated_at,
                is_favorite=note.is_favorite,
                score=score,
            ),
        )

    results.sort(key=lambda result: (result.score, result.updated_at), reverse=True)
    return results[:limit]


async def search_notes(
    session: AuthSession | None,
    remote_store: RemoteNoteStore,
    query: str,
    limit: int = DEFAULT_LIMIT,
) -> list[NoteSearchResult]:
    """Search the session user's notes by keyword.

    An empty query returns no results without touching the store.

    Raises:
        UnauthorizedError: If there is no session.

    """
    user_id = require_user(session)
    if not query.strip():
        return []
    notes = await remote_store.list_for_user(user_id)
    return rank_notes(notes, query, limit)

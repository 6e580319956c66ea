"""Note model shared by the cache, the remote store, and the API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import ensure_utc, utcnow

DEFAULT_TITLE = "Untitled"


def normalize_title(title: str | None) -> str:
    """Flatten a title onto one trimmed line; blank titles become "Untitled"."""
    flattened = " ".join(str(title or "").splitlines()).strip()
    return flattened or DEFAULT_TITLE


Side = Literal["local", "remote"]


class Note(BaseModel):
    """A single user note.

    Field names are snake_case in Python and camelCase on the wire, matching
    the JSON kept in the device cache and the frontmatter header keys.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str
    title: str = DEFAULT_TITLE
    content: str = ""
    user_id: str = Field(alias="userId")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")
    is_favorite: bool = Field(default=False, alias="isFavorite")
    has_file_context: bool = Field(default=False, alias="hasFileContext")
    revision: int = 0

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: str | None) -> str:
        return normalize_title(value)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def to_json(self) -> str:
        """Serialise with camelCase keys."""
        return self.model_dump_json(by_alias=True)


@dataclass(frozen=True)
class ConflictReport:
    """Outcome of comparing the cached and remote copies of one note."""

    has_conflict: bool
    local_note: Note | None
    remote_note: Note | None
    newer_version: Side | None

"""Request and response payloads of the HTTP API."""

from pydantic import BaseModel


class NoteCreate(BaseModel):
    """Note creation payload."""

    title: str = ""
    content: str = ""


class NoteUpdate(BaseModel):
    """Note update payload; omitted fields are left unchanged."""

    title: str | None = None
    content: str | None = None


class MigrationReport(BaseModel):
    """Outcome of a legacy migration run."""

    migrated: int
    failed: int
    message: str

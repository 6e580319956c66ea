"""Exceptions raised across the NoteBuddy sync layer."""


class UnauthorizedError(Exception):
    """Raised when an operation is attempted without an authenticated session."""


class NoteNotFoundError(Exception):
    """Raised when neither the cache nor the remote store holds a note."""


class DecodeFailure(ValueError):  # noqa: N818
    """Raised when a remote document cannot be parsed into a note."""


class RemoteStoreError(Exception):
    """Raised when the remote blob store fails to write or delete a document."""


class InvalidTransitionError(Exception):
    """Raised when the resolution workflow is driven out of order."""

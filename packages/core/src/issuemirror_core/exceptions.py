"""Errors raised by the sync engine.

Store failures live in issuemirror_store.models (StoreError,
StoreWriteConflict) so the store stays usable without the engine.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for sync engine errors."""


class RemoteUnavailable(SyncError):
    """The API could not be reached, or the pagination probe did not succeed."""


class RemoteError(SyncError):
    """The API answered with a status other than 200 or 304."""

    def __init__(self, status_line: str, url: str | None = None):
        self.status_line = status_line
        self.url = url
        message = status_line if url is None else f"{status_line} ({url})"
        super().__init__(message)


class MalformedResponse(RemoteError):
    """The response body is not the JSON array the collection endpoint promises."""


class RemoteNotFound(SyncError):
    """The configured remote does not name a repository."""


class RemoteNotSupported(SyncError):
    """The remote points at a host with no known API endpoint."""

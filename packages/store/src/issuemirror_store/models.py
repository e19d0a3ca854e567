"""Store data models and errors.

Decoupled from issuemirror_core so the store layer can be used (and read
back by the list/show commands) without the sync engine.
"""

from __future__ import annotations

from dataclasses import dataclass


class StoreError(Exception):
    """A store operation failed."""


class StoreWriteConflict(StoreError):
    """Another writer moved the ref between reading its head and committing."""

    def __init__(self, ref: str, expected: str | None, actual: str | None):
        self.ref = ref
        self.expected = expected
        self.actual = actual
        super().__init__(f"{ref} moved: expected {expected or 'no ref'}, found {actual or 'no ref'}")


@dataclass(frozen=True)
class Signature:
    """Author/committer identity for one Version.

    ``date`` is the resource's own timestamp as supplied by the remote,
    not the time it was fetched.
    """

    name: str
    email: str
    date: str  # ISO-8601


@dataclass(frozen=True)
class Version:
    """One committed snapshot in a resource's history."""

    commit: str
    parent: str | None
    author: str
    email: str
    date: str
    message: str

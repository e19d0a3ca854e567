"""Abstract versioned object store interface.

The sync engine only ever talks to BaseStore. A backend provides immutable
content-addressed documents, one named ref per resource pointing at its
latest Version, a linear commit history behind each ref, and small keyed
side tables ("notes") for page tokens and provenance.

The engine reads and appends; nothing here rewrites or deletes history.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from issuemirror_store.models import Signature, Version


class BaseStore(ABC):
    """Pluggable versioned store for mirrored resources.

    Ref names are short, collection-prefixed identifiers such as
    ``issue/12`` or ``comment/98765``. Backends map them onto their own
    namespace.
    """

    @abstractmethod
    def resolve(self, ref: str) -> str | None:
        """Return the head Version id of *ref*, or None if the ref does not exist."""

    @abstractmethod
    def hash_document(self, content: str) -> str:
        """Return the content hash *content* would be stored under, without writing it."""

    @abstractmethod
    def document_hash(self, commit: str) -> str | None:
        """Return the content hash of the document stored at Version *commit*."""

    @abstractmethod
    def read_document(self, ref_or_commit: str) -> str:
        """Return the document text stored at a ref head or a Version id."""

    @abstractmethod
    def commit_document(
        self,
        ref: str,
        content: str,
        *,
        parent: str | None,
        author: Signature,
        message: str,
    ) -> str:
        """Store *content* as a new Version and move *ref* to it.

        The ref is only moved if it still points at *parent* (or is absent
        when *parent* is None). Otherwise StoreWriteConflict is raised and
        nothing is changed. Returns the new Version id.
        """

    @abstractmethod
    def list_refs(self, kind: str) -> list[str]:
        """Return all ref names for *kind*, sorted by numeric identity."""

    @abstractmethod
    def history(self, ref: str) -> list[Version]:
        """Return the Version chain of *ref*, newest first. Empty if unknown."""

    @abstractmethod
    def get_note(self, namespace: str, key: str) -> str | None:
        """Return the note stored under *key* in *namespace*, or None."""

    @abstractmethod
    def set_note(self, namespace: str, key: str, value: str) -> None:
        """Create or replace the note stored under *key* in *namespace*.

        *value* must not be blank; StoreError is raised otherwise.
        """

    @abstractmethod
    def list_notes(self, namespace: str) -> dict[str, str]:
        """Return every note in *namespace* as a ``{key: value}`` mapping."""

    def close(self) -> None:
        """Release any resources held by the store.

        Optional — subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """


def ref_sort_key(ref: str) -> tuple[str, int, str]:
    """Order ``kind/<n>`` refs numerically; anything non-numeric sorts last."""
    kind, _, ident = ref.partition("/")
    if ident.isdigit():
        return (kind, int(ident), "")
    return (kind, 1 << 62, ident)

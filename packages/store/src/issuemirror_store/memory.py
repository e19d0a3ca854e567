"""MemoryStore — in-process store with the same semantics as GitStore.

Nothing is persisted. Used by the engine tests and for throw-away runs where
a full git repository would only get in the way. Document hashes are
computed exactly as git computes blob ids, so a hash taken here matches the
one GitStore would assign to the same content.
"""

from __future__ import annotations

import hashlib
import threading
from typing import TYPE_CHECKING

from issuemirror_store.base import BaseStore, ref_sort_key
from issuemirror_store.models import StoreError, StoreWriteConflict, Version

if TYPE_CHECKING:
    from issuemirror_store.models import Signature


def git_blob_hash(content: str) -> str:
    data = content.encode("utf-8")
    return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()


class MemoryStore(BaseStore):
    """Keeps blobs, Versions, refs and notes in plain dictionaries."""

    def __init__(self):
        self._blobs: dict[str, str] = {}
        self._versions: dict[str, tuple[Version, str]] = {}  # commit -> (version, blob id)
        self._refs: dict[str, str] = {}
        self._notes: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    def resolve(self, ref: str) -> str | None:
        return self._refs.get(ref)

    def hash_document(self, content: str) -> str:
        return git_blob_hash(content)

    def document_hash(self, commit: str) -> str | None:
        entry = self._versions.get(commit)
        return entry[1] if entry else None

    def read_document(self, ref_or_commit: str) -> str:
        commit = self._refs.get(ref_or_commit, ref_or_commit)
        entry = self._versions.get(commit)
        if entry is None:
            raise StoreError(f"Unknown ref or version: {ref_or_commit}")
        return self._blobs[entry[1]]

    def commit_document(
        self,
        ref: str,
        content: str,
        *,
        parent: str | None,
        author: Signature,
        message: str,
    ) -> str:
        blob = git_blob_hash(content)
        seed = f"{blob}\n{parent or ''}\n{author.name}\n{author.date}\n{message}\n{len(self._versions)}"
        commit = hashlib.sha1(seed.encode("utf-8")).hexdigest()
        with self._lock:
            current = self._refs.get(ref)
            if current != parent:
                raise StoreWriteConflict(ref, parent, current)
            self._blobs[blob] = content
            self._versions[commit] = (
                Version(
                    commit=commit,
                    parent=parent,
                    author=author.name,
                    email=author.email,
                    date=author.date,
                    message=message,
                ),
                blob,
            )
            self._refs[ref] = commit
        return commit

    def list_refs(self, kind: str) -> list[str]:
        prefix = f"{kind}/"
        return sorted((r for r in self._refs if r.startswith(prefix)), key=ref_sort_key)

    def history(self, ref: str) -> list[Version]:
        chain: list[Version] = []
        commit = self._refs.get(ref)
        while commit is not None:
            version = self._versions[commit][0]
            chain.append(version)
            commit = version.parent
        return chain

    def get_note(self, namespace: str, key: str) -> str | None:
        return self._notes.get(namespace, {}).get(key)

    def set_note(self, namespace: str, key: str, value: str) -> None:
        if not value.strip():
            raise StoreError(f"Refusing to store a blank note for {key!r}")
        with self._lock:
            self._notes.setdefault(namespace, {})[key] = value

    def list_notes(self, namespace: str) -> dict[str, str]:
        return dict(self._notes.get(namespace, {}))

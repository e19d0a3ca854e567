"""GitStore — the mirror lives in an ordinary git repository.

Only plumbing commands are used, so no working tree is touched and the
mirror may share the repository of the project it mirrors. Browse it with
stock tooling: ``git log refs/mirror/issue/12``.

Layout:
  <namespace>/<kind>/<id>              one ref per resource (e.g. refs/mirror/issue/12)
  each Version                         a commit whose tree holds a single resource.json
  refs/notes/issuemirror/<namespace>   note side tables, attached to the blob of the key
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from issuemirror_store.base import BaseStore, ref_sort_key
from issuemirror_store.models import StoreError, StoreWriteConflict, Version

if TYPE_CHECKING:
    from issuemirror_store.models import Signature

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "resource.json"
_NOTES_PREFIX = "refs/notes/issuemirror"

# Notes commits are bookkeeping, not resource history; give them a fixed
# identity so the store works without any user.name/user.email config.
_NOTES_IDENTITY = {
    "GIT_AUTHOR_NAME": "issuemirror",
    "GIT_AUTHOR_EMAIL": "issuemirror@localhost",
    "GIT_COMMITTER_NAME": "issuemirror",
    "GIT_COMMITTER_EMAIL": "issuemirror@localhost",
}


class GitStore(BaseStore):
    """Stores resource history in a git repository through the git executable.

    ``path`` may be an existing repository (bare or not) or any directory
    inside a work tree, in which case the enclosing repository is used. When
    no repository is found and ``create`` is true, a bare repository is
    initialised at ``path``, which must then be missing or empty.
    """

    def __init__(self, path: str | Path = ".", namespace: str = "refs/mirror", create: bool = True):
        self.root = Path(path).resolve()
        self.namespace = namespace.rstrip("/")
        self.git_dir = self._find_git_dir()
        if self.git_dir is None:
            if not create:
                raise StoreError(f"Not a git repository: {self.root}")
            if self.root.exists() and (not self.root.is_dir() or any(self.root.iterdir())):
                raise StoreError(f"Refusing to create a mirror repository in non-empty {self.root}")
            self.root.mkdir(parents=True, exist_ok=True)
            self._run("init", "--bare", "--quiet", str(self.root))
            logger.info("Initialised mirror repository at %s", self.root)
            self.git_dir = self.root

    # ------------------------------------------------------------------ #
    # git plumbing                                                         #
    # ------------------------------------------------------------------ #

    def _run_bytes(self, *args: str, input: bytes | None = None, env: dict | None = None) -> bytes:
        try:
            result = subprocess.run(
                ["git", "-C", str(self.root), *args],
                input=input,
                capture_output=True,
                check=True,
                env={**os.environ, **env} if env else None,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", errors="replace").strip()
            raise StoreError(f"git {args[0]} failed: {stderr}") from e
        except FileNotFoundError as e:
            raise StoreError("Git executable not found") from e
        return result.stdout

    def _run(self, *args: str, input: str | None = None, env: dict | None = None) -> str:
        data = input.encode("utf-8") if input is not None else None
        return self._run_bytes(*args, input=data, env=env).decode("utf-8").strip()

    def _try_run(self, *args: str, input: str | None = None) -> str | None:
        """Like _run, but a failing command yields None instead of raising."""
        try:
            return self._run(*args, input=input)
        except StoreError:
            return None

    def _find_git_dir(self) -> Path | None:
        """Return the repository holding root, walking up like git itself does."""
        if not self.root.is_dir():
            return None
        git_dir = self._try_run("rev-parse", "--absolute-git-dir")
        return Path(git_dir).resolve() if git_dir else None

    def _full_ref(self, ref: str) -> str:
        return f"{self.namespace}/{ref}"

    def _notes_ref(self, namespace: str) -> str:
        return f"{_NOTES_PREFIX}/{namespace}"

    def _read_blobs(self, object_ids: list[str]) -> dict[str, str]:
        """Read many blobs with a single ``cat-file --batch`` call."""
        if not object_ids:
            return {}
        out = self._run_bytes("cat-file", "--batch", input="".join(f"{oid}\n" for oid in object_ids).encode())
        blobs: dict[str, str] = {}
        pos = 0
        for oid in object_ids:
            header_end = out.index(b"\n", pos)
            header = out[pos:header_end].decode().split()
            if len(header) < 3:
                raise StoreError(f"Object {oid} is missing from {self.root}")
            size = int(header[2])
            start = header_end + 1
            blobs[oid] = out[start : start + size].decode("utf-8")
            pos = start + size + 1
        return blobs

    # ------------------------------------------------------------------ #
    # BaseStore                                                            #
    # ------------------------------------------------------------------ #

    def resolve(self, ref: str) -> str | None:
        return self._try_run("rev-parse", "--verify", "--quiet", f"{self._full_ref(ref)}^{{commit}}")

    def hash_document(self, content: str) -> str:
        return self._run("hash-object", "--no-filters", "--stdin", input=content)

    def document_hash(self, commit: str) -> str | None:
        return self._try_run("rev-parse", "--verify", "--quiet", f"{commit}:{DOCUMENT_NAME}")

    def read_document(self, ref_or_commit: str) -> str:
        target = ref_or_commit
        if self.resolve(ref_or_commit) is not None:
            target = self._full_ref(ref_or_commit)
        data = self._run_bytes("cat-file", "blob", f"{target}:{DOCUMENT_NAME}")
        return data.decode("utf-8")

    def commit_document(
        self,
        ref: str,
        content: str,
        *,
        parent: str | None,
        author: Signature,
        message: str,
    ) -> str:
        blob = self._run("hash-object", "-w", "--no-filters", "--stdin", input=content)
        tree = self._run("mktree", input=f"100644 blob {blob}\t{DOCUMENT_NAME}\n")

        args = ["commit-tree", tree]
        if parent:
            args += ["-p", parent]
        args += ["-m", message]
        env = {
            "GIT_AUTHOR_NAME": author.name,
            "GIT_AUTHOR_EMAIL": author.email,
            "GIT_AUTHOR_DATE": author.date,
            "GIT_COMMITTER_NAME": author.name,
            "GIT_COMMITTER_EMAIL": author.email,
            "GIT_COMMITTER_DATE": author.date,
        }
        commit = self._run(*args, env=env)

        # update-ref with an expected old value is git's compare-and-swap;
        # an all-zero old value requires the ref to be absent.
        expected = parent or "0" * len(commit)
        try:
            self._run("update-ref", "-m", message, self._full_ref(ref), commit, expected)
        except StoreError as e:
            raise StoreWriteConflict(ref, parent, self.resolve(ref)) from e
        return commit

    def list_refs(self, kind: str) -> list[str]:
        prefix = f"{self.namespace}/"
        out = self._run("for-each-ref", "--format=%(refname)", f"{prefix}{kind}/")
        refs = [line[len(prefix) :] for line in out.splitlines() if line.startswith(prefix)]
        return sorted(refs, key=ref_sort_key)

    def history(self, ref: str) -> list[Version]:
        if self.resolve(ref) is None:
            return []
        fmt = "%H%x1f%P%x1f%an%x1f%ae%x1f%aI%x1f%s%x1e"
        out = self._run("log", "--first-parent", f"--format={fmt}", self._full_ref(ref))
        versions = []
        for record in out.split("\x1e"):
            record = record.strip("\n")
            if not record:
                continue
            commit, parents, name, email, date, subject = record.split("\x1f")
            versions.append(
                Version(
                    commit=commit,
                    parent=parents.split()[0] if parents else None,
                    author=name,
                    email=email,
                    date=date,
                    message=subject,
                )
            )
        return versions

    def get_note(self, namespace: str, key: str) -> str | None:
        obj = self._run("hash-object", "--no-filters", "--stdin", input=key)
        return self._try_run("notes", f"--ref={self._notes_ref(namespace)}", "show", obj)

    def set_note(self, namespace: str, key: str, value: str) -> None:
        if not value.strip():
            raise StoreError(f"Refusing to store a blank note for {key!r}")
        obj = self._run("hash-object", "-w", "--no-filters", "--stdin", input=key)
        self._run(
            "notes",
            f"--ref={self._notes_ref(namespace)}",
            "add",
            "--force",
            "-m",
            value,
            obj,
            env=_NOTES_IDENTITY,
        )

    def list_notes(self, namespace: str) -> dict[str, str]:
        notes_ref = self._notes_ref(namespace)
        if self._try_run("rev-parse", "--verify", "--quiet", notes_ref) is None:
            return {}
        pairs = []
        for line in self._run("notes", f"--ref={notes_ref}", "list").splitlines():
            note_blob, _, annotated = line.partition(" ")
            pairs.append((note_blob, annotated))
        blobs = self._read_blobs(sorted({oid for pair in pairs for oid in pair}))
        return {blobs[annotated]: blobs[note_blob].strip() for note_blob, annotated in pairs}

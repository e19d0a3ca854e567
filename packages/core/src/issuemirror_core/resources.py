"""Remote collections mirrored by the engine and their ref naming."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Collection:
    """One paginated remote collection.

    ``identity`` names the document field holding the resource's stable
    integer id; refs are named ``<kind>/<id>``.
    """

    name: str
    kind: str
    path: str
    identity: str

    def identity_of(self, document: dict) -> int | None:
        value = document.get(self.identity)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def ref_name(self, document: dict) -> str:
        ident = self.identity_of(document)
        if ident is None:
            raise KeyError(f"{self.kind} document has no integer {self.identity!r}")
        return f"{self.kind}/{ident}"

    @property
    def pages_namespace(self) -> str:
        return f"{self.name}-pages"

    @property
    def page_hashes_namespace(self) -> str:
        return f"{self.name}-page-hashes"


ISSUES = Collection(name="issues", kind="issue", path="issues", identity="number")
COMMENTS = Collection(name="comments", kind="comment", path="issues/comments", identity="id")

COLLECTIONS: tuple[Collection, ...] = (ISSUES, COMMENTS)
PROVENANCE_NAMESPACE = "provenance"


def get_collection(name: str) -> Collection:
    for collection in COLLECTIONS:
        if name in (collection.name, collection.kind):
            return collection
    raise ValueError(f"Unknown collection: {name!r}. Choose from {', '.join(c.name for c in COLLECTIONS)}.")

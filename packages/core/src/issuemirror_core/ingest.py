"""Resource ingestion: commit new and changed documents, skip duplicates."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from issuemirror_core.resources import PROVENANCE_NAMESPACE
from issuemirror_store.models import Signature, StoreWriteConflict

if TYPE_CHECKING:
    from issuemirror_core.http.decoder import DecodedPage
    from issuemirror_core.resources import Collection
    from issuemirror_store.base import BaseStore

logger = logging.getLogger(__name__)

ADDED = "added"
UPDATED = "updated"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class IngestEvent:
    """Outcome for one resource document."""

    action: str  # ADDED | UPDATED | SKIPPED | FAILED
    ref: str
    commit: str | None = None
    detail: str = ""

    def __str__(self) -> str:
        line = f"{self.action.capitalize()} {self.ref}"
        return f"{line}: {self.detail}" if self.detail else line


def canonical_json(document: dict) -> str:
    """Pretty-printed, key-order-stable serialization; equal content, equal bytes."""
    return json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def signature_for(document: dict, host: str) -> Signature:
    """Author a Version as the resource's own user, dated by the resource itself."""
    login = user_login(document.get("user")) or "ghost"
    date = document.get("updated_at") or document.get("created_at") or "1970-01-01T00:00:00Z"
    return Signature(name=login, email=f"{login}@users.noreply.{host}", date=date)


def user_login(user) -> str | None:
    """Login of a ``user`` field, which the remote sends as an object or a bare name."""
    if isinstance(user, str):
        return user or None
    if isinstance(user, dict):
        return user.get("login") or None
    return None


def commit_message(ref: str, document: dict) -> str:
    title = (document.get("title") or "").strip()
    return f"{ref}: {title}" if title else ref


class ResourceIngestor:
    """Writes one collection's documents into the store.

    All writes for a collection go through one ingestor on one thread; the
    store's compare-and-swap catches writers from other processes.
    """

    def __init__(self, store: BaseStore, collection: Collection, host: str):
        self.store = store
        self.collection = collection
        self.host = host

    def ingest(self, document: dict, url: str, token: str = "") -> IngestEvent:
        try:
            ref = self.collection.ref_name(document)
        except KeyError as e:
            logger.warning("Skipping document from %s: %s", url, e.args[0])
            return IngestEvent(FAILED, f"{self.collection.kind}/?", detail=e.args[0])

        content = canonical_json(document)
        try:
            event = self._commit_if_changed(ref, document, content)
        except StoreWriteConflict as e:
            logger.warning("%s; retrying with the new head", e)
            event = self._commit_if_changed(ref, document, content)

        if event.commit is not None:
            provenance = f"{url}\n{token}" if token else url
            self.store.set_note(PROVENANCE_NAMESPACE, ref, provenance)
        return event

    def _commit_if_changed(self, ref: str, document: dict, content: str) -> IngestEvent:
        head = self.store.resolve(ref)
        if head is not None and self.store.hash_document(content) == self.store.document_hash(head):
            logger.debug("%s unchanged at %s", ref, head[:7])
            return IngestEvent(SKIPPED, ref)

        commit = self.store.commit_document(
            ref,
            content,
            parent=head,
            author=signature_for(document, self.host),
            message=commit_message(ref, document),
        )
        return IngestEvent(ADDED if head is None else UPDATED, ref, commit=commit)

    def ingest_page(self, page: DecodedPage, url: str) -> list[IngestEvent]:
        """Ingest every document of a fresh page, then record the page token.

        The token is recorded even when every resource was skipped: the
        remote may hand out a new token for unchanged content. A page whose
        body hash matches the one recorded after its last full ingestion is
        not ingested again; only its token is refreshed.
        """
        token = page.headers.token
        if page.body_hash and self.store.get_note(self.collection.page_hashes_namespace, url) == page.body_hash:
            logger.debug("%s body unchanged under a new token", url)
            self._record_page(url, token, "")
            return []

        ident = self.collection.identity_of
        documents = sorted(page.documents, key=lambda d: (ident(d) is None, ident(d) or 0))
        events = [self.ingest(document, url, token) for document in documents]
        self._record_page(url, token, page.body_hash)
        return events

    def _record_page(self, url: str, token: str, body_hash: str) -> None:
        if token and self.store.get_note(self.collection.pages_namespace, url) != token:
            self.store.set_note(self.collection.pages_namespace, url, token)
        if body_hash:
            self.store.set_note(self.collection.page_hashes_namespace, url, body_hash)

"""Sync orchestration: enumerate, fetch, decode and ingest each collection."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from issuemirror_core.exceptions import RemoteError, RemoteUnavailable
from issuemirror_core.http.decoder import RateLimitCounter, decode_response
from issuemirror_core.ingest import ADDED, FAILED, SKIPPED, UPDATED, IngestEvent, ResourceIngestor
from issuemirror_core.pages import PageTask, collection_template, enumerate_pages
from issuemirror_core.resources import COLLECTIONS
from issuemirror_store.models import StoreError

if TYPE_CHECKING:
    from issuemirror_core.gh.remote import RemoteCoordinates
    from issuemirror_core.http.client import SyncClient
    from issuemirror_core.http.decoder import RawResponse
    from issuemirror_core.resources import Collection
    from issuemirror_store.base import BaseStore

logger = logging.getLogger(__name__)


@dataclass
class CollectionResult:
    name: str
    events: list[IngestEvent] = field(default_factory=list)
    pages: int = 0
    pages_fetched: int = 0
    pages_unchanged: int = 0
    error: Exception | None = None

    def count(self, action: str) -> int:
        return sum(1 for e in self.events if e.action == action)


@dataclass
class SyncResult:
    """Returned by sync() — everything the caller needs to report the run."""

    remote: str
    collections: list[CollectionResult] = field(default_factory=list)
    rate_limit_remaining: int | None = None

    @property
    def ok(self) -> bool:
        return all(c.error is None for c in self.collections)

    @property
    def events(self) -> list[IngestEvent]:
        return [e for c in self.collections for e in c.events]

    @property
    def added(self) -> int:
        return sum(c.count(ADDED) for c in self.collections)

    @property
    def updated(self) -> int:
        return sum(c.count(UPDATED) for c in self.collections)

    @property
    def skipped(self) -> int:
        return sum(c.count(SKIPPED) for c in self.collections)

    @property
    def failed(self) -> int:
        return sum(c.count(FAILED) for c in self.collections)


def _fetch_pages(client: SyncClient, tasks: list[PageTask], jobs: int) -> Iterator[tuple[PageTask, RawResponse]]:
    """Yield responses in page order, fetching up to *jobs* pages at once.

    Closing the iterator early cancels every fetch that has not started.
    """
    if jobs <= 1:
        for task in tasks:
            yield task, client.fetch(task.url, task.token)
        return

    with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="issuemirror-fetch") as executor:
        futures: list[Future] = [executor.submit(client.fetch, t.url, t.token) for t in tasks]
        try:
            for task, future in zip(tasks, futures):
                yield task, future.result()
        finally:
            for future in futures:
                future.cancel()


def sync_collection(
    coords: RemoteCoordinates,
    store: BaseStore,
    client: SyncClient,
    collection: Collection,
    *,
    counter: RateLimitCounter,
    per_page: int = 100,
    jobs: int = 1,
    on_event: Callable[[IngestEvent], None] | None = None,
) -> CollectionResult:
    """Mirror one collection. Errors end the collection but never undo earlier commits."""
    result = CollectionResult(name=collection.name)
    ingestor = ResourceIngestor(store, collection, coords.host)
    template = collection_template(coords, collection, per_page)

    pages = None
    try:
        records = store.list_notes(collection.pages_namespace)
        tasks = enumerate_pages(client, template, records, counter)
        result.pages = len(tasks)

        pages = _fetch_pages(client, tasks, jobs)
        for task, raw in pages:
            page = decode_response(raw, counter)
            if page.not_modified:
                logger.debug("%s page %d not modified", collection.name, task.page)
                result.pages_unchanged += 1
                continue
            for event in ingestor.ingest_page(page, task.url):
                result.events.append(event)
                if on_event is not None:
                    on_event(event)
            result.pages_fetched += 1
    except (RemoteUnavailable, RemoteError, StoreError) as e:
        logger.error("Sync of %s aborted: %s", collection.name, e)
        result.error = e
    finally:
        if pages is not None:
            pages.close()

    return result


def sync(
    coords: RemoteCoordinates,
    store: BaseStore,
    client: SyncClient,
    *,
    collections: Sequence[Collection] = COLLECTIONS,
    per_page: int = 100,
    jobs: int = 1,
    on_event: Callable[[IngestEvent], None] | None = None,
) -> SyncResult:
    """Run the full pipeline once per collection.

    A failing collection is recorded on its CollectionResult and the next
    collection still runs. Re-running against an unchanged remote creates
    no Versions.
    """
    counter = RateLimitCounter()
    result = SyncResult(remote=coords.slug)

    for collection in collections:
        collection_result = sync_collection(
            coords,
            store,
            client,
            collection,
            counter=counter,
            per_page=per_page,
            jobs=jobs,
            on_event=on_event,
        )
        result.collections.append(collection_result)
        logger.info(
            "%s: %d added, %d updated, %d skipped, %d page(s) not modified",
            collection.name,
            collection_result.count(ADDED),
            collection_result.count(UPDATED),
            collection_result.count(SKIPPED),
            collection_result.pages_unchanged,
        )

    result.rate_limit_remaining = counter.remaining
    return result

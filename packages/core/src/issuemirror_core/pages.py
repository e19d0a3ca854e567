"""Page enumeration: turn a collection into a worklist of conditional fetches."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import parse_qs, urlsplit

from issuemirror_core.exceptions import RemoteUnavailable
from issuemirror_core.http.decoder import normalize_headers

if TYPE_CHECKING:
    from issuemirror_core.gh.remote import RemoteCoordinates
    from issuemirror_core.http.client import SyncClient
    from issuemirror_core.http.decoder import RateLimitCounter
    from issuemirror_core.resources import Collection

logger = logging.getLogger(__name__)

PAGE_PLACEHOLDER = "{page}"


@dataclass(frozen=True)
class PageTask:
    page: int
    url: str
    token: str = ""  # empty = unconditional fetch


def collection_template(coords: RemoteCoordinates, collection: Collection, per_page: int = 100) -> str:
    return (
        f"{coords.api_url}/repos/{coords.owner}/{coords.repo}/{collection.path}"
        f"?state=all&per_page={per_page}&page={PAGE_PLACEHOLDER}"
    )


def page_url(template: str, page: int) -> str:
    return template.replace(PAGE_PLACEHOLDER, str(page))


def page_number(url: str) -> int | None:
    pages = parse_qs(urlsplit(url).query).get("page")
    if not pages or not pages[-1].isdigit():
        return None
    return int(pages[-1])


def build_worklist(template: str, last_page: int, records: Mapping[str, str]) -> list[PageTask]:
    """One task per page ``1..last_page``, reusing stored tokens where the URL is known.

    Records for pages past *last_page* are ignored, not removed: a shrinking
    remote is not treated as deletion.
    """
    tasks = {}
    for page in range(1, max(last_page, 1) + 1):
        url = page_url(template, page)
        tasks[url] = PageTask(page=page, url=url, token=records.get(url, ""))
    return sorted(tasks.values(), key=lambda t: (t.page, t.url))


def enumerate_pages(
    client: SyncClient,
    template: str,
    records: Mapping[str, str],
    counter: RateLimitCounter | None = None,
) -> list[PageTask]:
    """Probe page 1 for the page count and build the worklist.

    Raises RemoteUnavailable when the probe does not succeed; no page is
    fetched in that case.
    """
    first = page_url(template, 1)
    raw = client.probe(first)
    if raw.status_code != 200:
        raise RemoteUnavailable(f"Pagination probe of {first} returned {raw.status_line}")

    headers = normalize_headers(raw.headers)
    if counter is not None:
        counter.observe(headers.remaining_quota)

    tasks = build_worklist(template, headers.last_page, records)
    known = sum(1 for t in tasks if t.token)
    logger.info("%s: %d page(s), %d with a stored token", first, len(tasks), known)

    stale = [url for url in records if (page_number(url) or 0) > headers.last_page]
    if stale:
        logger.debug("Leaving %d stored page record(s) past page %d untouched", len(stale), headers.last_page)
    return tasks

"""Response decoding and header normalization.

Everything that picks apart raw HTTP headers lives here, behind PageHeaders,
so the quote stripping and Link slicing can be tested without a network layer.
"""

from __future__ import annotations

import hashlib
import json
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlsplit

from issuemirror_core.exceptions import MalformedResponse, RemoteError

_LINK_RE = re.compile(r"<([^>]*)>\s*((?:;[^,<]*)*)")
_REL_RE = re.compile(r"""rel\s*=\s*"?([^";]*)"?""")

DEFAULT_LAST_PAGE = 1


class RateLimitCounter:
    """Last remaining-quota value reported by the remote.

    Purely observational; concurrent fetchers may race and the last write wins.
    """

    def __init__(self):
        self._remaining: int | None = None
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int | None:
        return self._remaining

    def observe(self, remaining: int | None) -> None:
        if remaining is None:
            return
        with self._lock:
            self._remaining = remaining


@dataclass(frozen=True)
class PageHeaders:
    token: str = ""
    last_page: int = DEFAULT_LAST_PAGE
    remaining_quota: int | None = None


@dataclass(frozen=True)
class RawResponse:
    """What the HTTP client hands over: nothing here is interpreted yet."""

    status_code: int
    reason: str
    headers: Mapping[str, str]
    body: bytes = b""
    url: str = ""

    @property
    def status_line(self) -> str:
        return f"{self.status_code} {self.reason}".strip()


@dataclass
class DecodedPage:
    status_code: int
    headers: PageHeaders
    documents: list[dict] = field(default_factory=list)
    not_modified: bool = False
    body_hash: str = ""  # sha1 of the raw body; empty for 304


def strip_token(etag: str) -> str:
    """Strip the quote characters around an entity tag, keeping a weak ``W/`` prefix."""
    etag = etag.strip()
    weak = etag[:2].upper() == "W/"
    if weak:
        etag = etag[2:]
    etag = etag.strip('"')
    return f"W/{etag}" if weak and etag else etag


def quote_token(token: str) -> str:
    """Inverse of strip_token, for use in an If-None-Match header."""
    if token.startswith("W/"):
        return f'W/"{token[2:]}"'
    return f'"{token}"'


def parse_last_page(link_header: str, default: int = DEFAULT_LAST_PAGE) -> int:
    """Return the ``page`` parameter of the rel="last" Link entry.

    Falls back to the final entry of the header when no entry is marked
    ``last``, and to *default* when there is nothing usable.
    """
    entries = _LINK_RE.findall(link_header or "")
    if not entries:
        return default

    chosen = entries[-1][0]
    for url, params in entries:
        rels = " ".join(_REL_RE.findall(params)).split()
        if "last" in rels:
            chosen = url
            break

    pages = parse_qs(urlsplit(chosen).query).get("page")
    if not pages:
        return default
    try:
        page = int(pages[-1])
    except ValueError:
        return default
    return page if page >= 1 else default


def normalize_headers(headers: Mapping[str, str]) -> PageHeaders:
    lowered = {k.lower(): v for k, v in headers.items()}

    remaining: int | None
    try:
        remaining = int(lowered["x-ratelimit-remaining"])
    except (KeyError, ValueError):
        remaining = None

    return PageHeaders(
        token=strip_token(lowered.get("etag", "")),
        last_page=parse_last_page(lowered.get("link", "")),
        remaining_quota=remaining,
    )


def decode_response(raw: RawResponse, counter: RateLimitCounter | None = None) -> DecodedPage:
    """Classify a response as fresh (200), unmodified (304) or an error.

    Raises RemoteError for any other status and MalformedResponse when a
    fresh body is not a JSON array of objects.
    """
    if raw.status_code not in (200, 304):
        raise RemoteError(raw.status_line, url=raw.url or None)

    headers = normalize_headers(raw.headers)
    if counter is not None:
        counter.observe(headers.remaining_quota)

    if raw.status_code == 304:
        return DecodedPage(status_code=304, headers=headers, not_modified=True)

    try:
        documents = json.loads(raw.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedResponse(f"{raw.status_line}: body is not valid JSON ({e})", url=raw.url or None) from e
    if not isinstance(documents, list) or not all(isinstance(d, dict) for d in documents):
        raise MalformedResponse(f"{raw.status_line}: expected a JSON array of objects", url=raw.url or None)

    return DecodedPage(
        status_code=200,
        headers=headers,
        documents=documents,
        body_hash=hashlib.sha1(raw.body).hexdigest(),
    )

"""Shared fixtures: an in-process fake of the paginated issues API."""

from __future__ import annotations

import hashlib
import json
import math

import httpx
import pytest

from issuemirror_core.gh.remote import RemoteCoordinates
from issuemirror_core.http.client import SyncClient
from issuemirror_store.memory import MemoryStore

API = "https://api.github.com"
COORDS = RemoteCoordinates(host="github.com", owner="o", repo="r", api_url=API)


def issue(number, title="T", user="a", created_at="2024-01-01T00:00:00Z", **extra):
    doc = {"number": number, "title": title, "user": {"login": user}, "created_at": created_at, "state": "open"}
    doc.update(extra)
    return doc


def comment(comment_id, body="hi", user="c", issue_number=1):
    return {
        "id": comment_id,
        "body": body,
        "user": {"login": user},
        "issue_url": f"{API}/repos/o/r/issues/{issue_number}",
        "created_at": "2024-02-01T00:00:00Z",
        "updated_at": "2024-02-01T00:00:00Z",
    }


class FakeRemote:
    """Serves issues and comments with ETags, Link pagination and 304s.

    ``salt`` changes every ETag without changing content; ``fail`` maps
    ``(collection, page)`` to a status code to return instead of data;
    ``bodies`` replaces the body of a page with raw bytes;
    ``down`` makes every request a transport error; ``weak`` serves weak ETags.
    """

    def __init__(self, issues=(), comments=(), per_page=2):
        self.data = {"issues": list(issues), "comments": list(comments)}
        self.per_page = per_page
        self.salt = ""
        self.fail: dict[tuple[str, int], int] = {}
        self.bodies: dict[tuple[str, int], bytes] = {}
        self.probe_status = 200
        self.down = False
        self.weak = False
        self.requests: list[httpx.Request] = []

    def gets(self, collection=None):
        return [
            r
            for r in self.requests
            if r.method == "GET" and (collection is None or self._collection(r) == collection)
        ]

    @staticmethod
    def _collection(request):
        return "comments" if request.url.path.endswith("/comments") else "issues"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        name = self._collection(request)
        page = int(request.url.params.get("page", "1"))
        items = self.data[name]
        last = max(1, math.ceil(len(items) / self.per_page))

        if request.method == "HEAD" and self.probe_status != 200:
            return httpx.Response(self.probe_status)
        if (name, page) in self.fail:
            return httpx.Response(self.fail[(name, page)])

        chunk = items[(page - 1) * self.per_page : page * self.per_page]
        body = self.bodies.get((name, page)) or json.dumps(chunk).encode()
        etag = '"' + hashlib.sha1(body + self.salt.encode()).hexdigest() + '"'
        if self.weak:
            etag = "W/" + etag
        headers = {"ETag": etag, "X-RateLimit-Remaining": str(5000 - len(self.requests))}
        if last > 1:
            base = f"{API}{request.url.path}?state=all&per_page={self.per_page}"
            links = []
            if page < last:
                links.append(f'<{base}&page={page + 1}>; rel="next"')
            links.append(f'<{base}&page={last}>; rel="last"')
            headers["Link"] = ", ".join(links)

        if request.method == "HEAD":
            return httpx.Response(200, headers=headers)
        if request.headers.get("If-None-Match") == etag:
            return httpx.Response(304, headers=headers)
        return httpx.Response(200, headers=headers, content=body)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def client(remote):
    with SyncClient(API, transport=httpx.MockTransport(remote.handler)) as c:
        yield c


@pytest.fixture
def store():
    return MemoryStore()

"""Tests for the conditional HTTP client."""

import httpx
import pytest

from conftest import API
from issuemirror_core.exceptions import RemoteUnavailable
from issuemirror_core.http.client import SyncClient

URL = f"{API}/repos/o/r/issues?state=all&per_page=100&page=1"


def _client(handler, **kwargs):
    return SyncClient(API, transport=httpx.MockTransport(handler), **kwargs)


class TestFetch:
    def test_unconditional_without_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"[]", headers={"ETag": '"abc"'})

        with _client(handler) as client:
            raw = client.fetch(URL)

        assert "If-None-Match" not in seen[0].headers
        assert seen[0].method == "GET"
        assert raw.status_code == 200
        assert raw.body == b"[]"
        assert raw.headers["etag"] == '"abc"'
        assert raw.url == URL

    def test_conditional_with_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(304)

        with _client(handler) as client:
            raw = client.fetch(URL, token="abc")

        assert seen[0].headers["If-None-Match"] == '"abc"'
        assert raw.status_code == 304
        assert raw.status_line == "304 Not Modified"

    def test_weak_token_requoted(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(304)

        with _client(handler) as client:
            client.fetch(URL, token="W/abc")

        assert seen[0].headers["If-None-Match"] == 'W/"abc"'

    def test_sends_accept_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"[]")

        with _client(handler) as client:
            client.fetch(URL)

        assert seen[0].headers["Accept"] == "application/vnd.github+json"
        assert seen[0].headers["User-Agent"].startswith("issuemirror")

    def test_auth_applied(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"[]")

        with _client(handler, auth=httpx.BasicAuth("me", "secret")) as client:
            client.fetch(URL)

        assert seen[0].headers["Authorization"].startswith("Basic ")

    def test_error_status_is_returned_not_raised(self):
        with _client(lambda request: httpx.Response(502)) as client:
            raw = client.fetch(URL)
        assert raw.status_code == 502


class TestProbe:
    def test_uses_head(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, headers={"Link": "<x?page=3>; rel=\"last\""})

        with _client(handler) as client:
            raw = client.probe(URL)

        assert seen[0].method == "HEAD"
        assert raw.headers["link"] == '<x?page=3>; rel="last"'


class TestTransportErrors:
    @pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout])
    def test_transport_error_becomes_remote_unavailable(self, error):
        def handler(request):
            raise error("boom", request=request)

        with _client(handler) as client:
            with pytest.raises(RemoteUnavailable) as exc:
                client.fetch(URL)
        assert isinstance(exc.value.__cause__, error)

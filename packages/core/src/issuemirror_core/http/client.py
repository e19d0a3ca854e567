"""Conditional HTTP client for the remote API.

One request per call, no retries and no caching: the page tokens the engine
keeps in the store are the cache, and the decoder decides what a response
means. Transport failures surface as RemoteUnavailable.
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Any

import httpx

from issuemirror_core.exceptions import RemoteUnavailable
from issuemirror_core.http.decoder import RawResponse, quote_token

logger = logging.getLogger(__name__)


def _user_agent() -> str:
    try:
        return f"issuemirror/{importlib.metadata.version('issuemirror')}"
    except importlib.metadata.PackageNotFoundError:
        return "issuemirror"


class SyncClient:
    """Thin wrapper around a long-lived httpx.Client.

    Example:
        >>> with SyncClient("https://api.github.com", auth=httpx.BasicAuth("me", "tok")) as client:
        ...     raw = client.fetch(url, token="abc123")
    """

    ACCEPT = "application/vnd.github+json"

    def __init__(
        self,
        api_url: str,
        auth: httpx.Auth | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self._client = httpx.Client(
            auth=auth,
            headers={"Accept": self.ACCEPT, "User-Agent": _user_agent()},
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    def __enter__(self) -> "SyncClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch(self, url: str, token: str = "") -> RawResponse:
        """GET *url*, conditionally on *token* when one is known."""
        headers = {"If-None-Match": quote_token(token)} if token else {}
        return self._send("GET", url, headers)

    def probe(self, url: str) -> RawResponse:
        """HEAD *url* — headers only, used to size a collection."""
        return self._send("HEAD", url, {})

    def _send(self, method: str, url: str, headers: dict[str, str]) -> RawResponse:
        logger.debug("%s %s%s", method, url, " (conditional)" if headers else "")
        try:
            response = self._client.request(method, url, headers=headers)
        except httpx.TransportError as e:
            raise RemoteUnavailable(f"{method} {url} failed: {type(e).__name__}: {e}") from e
        return RawResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            headers=response.headers,
            body=response.content,
            url=url,
        )

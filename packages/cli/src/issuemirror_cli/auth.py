"""Credential resolution for the remote API.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (CI / explicit override)
  2. netrc entry for the API host, then for the web host
  3. `gh auth token` (GitHub CLI session — works after `gh auth login`)

Credentials are read once per process, never logged and never written back.
"""

from __future__ import annotations

import logging
import netrc
import os
import subprocess
from collections.abc import Generator
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)


class TokenAuth(httpx.Auth):
    """Bearer token authentication."""

    def __init__(self, token: str):
        self._header = f"Bearer {token}"

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self._header
        yield request


def _netrc_auth(hosts: list[str], netrc_path: str | None) -> httpx.Auth | None:
    try:
        entries = netrc.netrc(netrc_path)
    except (FileNotFoundError, netrc.NetrcParseError, OSError) as e:
        logger.debug("No usable netrc file: %s", type(e).__name__)
        return None
    for host in hosts:
        found = entries.authenticators(host)
        if found and found[2]:
            login, _, password = found
            logger.debug("Resolved credentials for %s via netrc.", host)
            return httpx.BasicAuth(login or "", password)
    return None


def _gh_cli_token(host: str) -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token", "--hostname", host],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # No gh binary, or it hung waiting on the keyring.
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_credentials(
    host: str,
    api_url: str,
    netrc_path: str | None = None,
    token: str | None = None,
) -> httpx.Auth | None:
    """Return an httpx auth for *host*, or None to go unauthenticated.

    Never raises — anonymous access still works for public repositories,
    only with a much smaller rate limit.
    """
    token = token or os.environ.get("GITHUB_TOKEN")
    if token:
        return TokenAuth(token)

    api_host = urlsplit(api_url).hostname or host
    auth = _netrc_auth(list(dict.fromkeys([api_host, host])), netrc_path)
    if auth is not None:
        return auth

    gh_token = _gh_cli_token(host)
    if gh_token:
        logger.debug("Resolved GitHub token via gh CLI session.")
        return TokenAuth(gh_token)

    return None

"""Resolve a remote name, URL or slug to API coordinates — no network I/O."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from issuemirror_core.exceptions import RemoteNotFound, RemoteNotSupported

DEFAULT_HOST = "github.com"

_SCP_RE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>[^/].*)$")
_SLUG_RE = re.compile(r"^[\w.-]+/[\w.-]+$")


@dataclass(frozen=True)
class RemoteCoordinates:
    host: str
    owner: str
    repo: str
    api_url: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


def _split_url(url: str) -> tuple[str, str]:
    """Return (host, path) for https://, ssh://, git:// and scp-style remotes."""
    # https://github.com/owner/repo.git  ->  github.com, owner/repo.git
    # git@github.com:owner/repo.git      ->  github.com, owner/repo.git
    if "://" in url:
        rest = url.split("://", 1)[1]
        netloc, _, path = rest.partition("/")
        host = netloc.rsplit("@", 1)[-1].split(":", 1)[0]
        return host.lower(), path
    match = _SCP_RE.match(url)
    if match:
        return match.group("host").lower(), match.group("path")
    raise RemoteNotFound(f"Cannot parse remote URL: {url}")


def parse_remote_url(url: str, hosts: Mapping[str, str]) -> RemoteCoordinates:
    host, path = _split_url(url.strip())
    api_url = hosts.get(host)
    if api_url is None:
        raise RemoteNotSupported(
            f"No API endpoint configured for host {host!r}. Add it under 'hosts' in .issuemirror.yml."
        )
    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) != 2:
        raise RemoteNotFound(f"Remote URL does not name an owner/repository: {url}")
    owner, repo = parts[0], parts[1].removesuffix(".git")
    if not owner or not repo:
        raise RemoteNotFound(f"Remote URL does not name an owner/repository: {url}")
    return RemoteCoordinates(host=host, owner=owner, repo=repo, api_url=api_url.rstrip("/"))


def _git_remote_url(name: str, repo_path: Path) -> str | None:
    try:
        result = subprocess.run(
            ["git", "-C", str(repo_path), "remote", "get-url", name],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_remote(remote: str, repo_path: str | Path, hosts: Mapping[str, str]) -> RemoteCoordinates:
    """Resolve *remote* to coordinates.

    *remote* may be a full URL, an ``owner/repo`` slug (taken to live on
    github.com), or the name of a git remote configured in *repo_path*.
    """
    if "://" in remote or _SCP_RE.match(remote):
        return parse_remote_url(remote, hosts)
    if _SLUG_RE.match(remote):
        return parse_remote_url(f"https://{DEFAULT_HOST}/{remote}", hosts)

    url = _git_remote_url(remote, Path(repo_path))
    if url is None:
        raise RemoteNotFound(f"No git remote named {remote!r} in {repo_path}")
    return parse_remote_url(url, hosts)

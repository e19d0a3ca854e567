"""sync command — mirror remote issues and comments into the store."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from issuemirror_core.exceptions import RemoteError, RemoteNotFound, RemoteNotSupported, RemoteUnavailable
from issuemirror_core.gh.remote import resolve_remote
from issuemirror_core.http.client import SyncClient
from issuemirror_core.ingest import SKIPPED, IngestEvent
from issuemirror_core.resources import get_collection
from issuemirror_core.syncer import sync

console = Console()

EXIT_REMOTE_ERROR = 3

_ACTION_STYLE = {
    "added": "green",
    "updated": "cyan",
    "failed": "red",
}


def _print_event(event: IngestEvent) -> None:
    if event.action == SKIPPED:
        return
    style = _ACTION_STYLE.get(event.action, "white")
    console.print(f"[{style}]{escape(str(event))}[/{style}]", highlight=False)


@click.command("sync")
@click.argument("remote", default="origin")
@click.option(
    "--collection",
    "collection_names",
    multiple=True,
    type=click.Choice(["issues", "comments"]),
    help="Collection to mirror. Repeatable; defaults to the configured collections.",
)
@click.option("--jobs", "-j", type=int, default=None, help="Pages fetched concurrently. Overrides config file.")
@click.pass_context
def sync_cmd(ctx, remote: str, collection_names: tuple[str, ...], jobs: int | None):
    """Mirror issues and comments of REMOTE into the local store.

    REMOTE is a git remote name (default: origin), a repository URL, or an
    owner/name slug. Pages the remote reports as unchanged are not
    re-downloaded, and resources whose content did not change get no new
    version, so running sync repeatedly is cheap and safe.

    \b
    Exit codes:
      0  every collection synced (possibly with nothing to do)
      3  the remote failed mid-sync; everything stored before the failure is kept
    """
    from issuemirror_cli.auth import resolve_credentials

    config = ctx.obj["config"]
    store = ctx.obj["store"]

    try:
        coords = resolve_remote(remote, Path.cwd(), config["hosts"])
    except (RemoteNotFound, RemoteNotSupported) as e:
        raise click.UsageError(str(e)) from e

    try:
        collections = [get_collection(name) for name in (collection_names or config["collections"])]
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    auth = resolve_credentials(coords.host, coords.api_url, config.get("netrc"), token=config.get("github_token"))
    if auth is None:
        console.print("[yellow]No credentials found; syncing anonymously with a reduced rate limit.[/yellow]")

    console.print(f"Syncing [bold]{coords.slug}[/bold] from {coords.api_url}")
    with SyncClient(coords.api_url, auth=auth, timeout=config["timeout"]) as client:
        result = sync(
            coords,
            store,
            client,
            collections=collections,
            per_page=config["per_page"],
            jobs=jobs or config["jobs"],
            on_event=_print_event,
        )

    for c in result.collections:
        summary = (
            f"{c.name}: {c.count('added')} added, {c.count('updated')} updated, "
            f"{c.count('skipped')} unchanged, {c.pages_unchanged}/{c.pages} page(s) not modified"
        )
        if c.error is not None:
            console.print(f"[red]{summary} — aborted: {escape(str(c.error))}[/red]", highlight=False)
        else:
            console.print(summary, highlight=False)

    if result.rate_limit_remaining is not None:
        console.print(f"[dim]Rate limit remaining: {result.rate_limit_remaining}[/dim]")

    if not result.ok:
        errors = [c.error for c in result.collections if c.error is not None]
        remote_failed = any(isinstance(e, (RemoteError, RemoteUnavailable)) for e in errors)
        ctx.exit(EXIT_REMOTE_ERROR if remote_failed else 1)

"""Read-only commands over the mirror store: list, show, log.

None of these touch the network; they only read what sync stored.
"""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from issuemirror_core.ingest import user_login
from issuemirror_store.models import StoreError

console = Console()

_STATE_STYLE = {"open": "green", "closed": "red"}


def _normalize_ref(ref: str) -> str:
    """Accept ``issue/12``, ``comment/345`` or a bare issue number."""
    if ref.isdigit():
        return f"issue/{ref}"
    return ref.lstrip("#")


def _load(store, ref: str) -> dict:
    try:
        return json.loads(store.read_document(ref))
    except (StoreError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read {ref}: {e}") from e


def _labels(doc: dict) -> list[str]:
    return [label.get("name", "") if isinstance(label, dict) else str(label) for label in doc.get("labels") or []]


def _first_line(text: str | None, width: int = 60) -> str:
    line = (text or "").strip().splitlines()[0] if (text or "").strip() else ""
    return line[:width]


@click.command("list")
@click.option("--kind", type=click.Choice(["issue", "comment"]), default="issue", show_default=True)
@click.option("--open", "only_open", is_flag=True, help="Only show open issues.")
@click.option("--label", "labels", multiple=True, help="Only show issues carrying this label. Repeatable.")
@click.option("--limit", default=50, show_default=True, help="Maximum number of rows to show.")
@click.pass_context
def list_cmd(ctx, kind: str, only_open: bool, labels: tuple[str, ...], limit: int):
    """List mirrored issues or comments, newest first."""
    store = ctx.obj["store"]

    docs = [(ref, _load(store, ref)) for ref in store.list_refs(kind)]
    if only_open:
        docs = [(ref, d) for ref, d in docs if d.get("state") == "open"]
    if labels:
        wanted = set(labels)
        docs = [(ref, d) for ref, d in docs if wanted <= set(_labels(d))]

    if not docs:
        console.print(f"[yellow]No mirrored {kind}s found.[/yellow]")
        return

    docs = list(reversed(docs))[:limit]

    if kind == "issue":
        table = Table(title="Mirrored issues", show_header=True, header_style="bold cyan")
        table.add_column("#", style="bold", justify="right")
        table.add_column("State", width=8)
        table.add_column("Title", max_width=50)
        table.add_column("Labels", max_width=30)
        table.add_column("Updated", width=20)
        for _, d in docs:
            state = d.get("state", "")
            style = _STATE_STYLE.get(state, "white")
            table.add_row(
                str(d.get("number", "")),
                f"[{style}]{state}[/{style}]",
                escape(d.get("title") or ""),
                escape(", ".join(_labels(d))),
                (d.get("updated_at") or "")[:19].replace("T", " "),
            )
    else:
        table = Table(title="Mirrored comments", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="bold", justify="right")
        table.add_column("Issue", justify="right")
        table.add_column("Author", max_width=20)
        table.add_column("Comment", max_width=60)
        table.add_column("Updated", width=20)
        for _, d in docs:
            issue_url = d.get("issue_url") or ""
            table.add_row(
                str(d.get("id", "")),
                issue_url.rstrip("/").rsplit("/", 1)[-1] if issue_url else "",
                escape(user_login(d.get("user")) or ""),
                escape(_first_line(d.get("body"))),
                (d.get("updated_at") or "")[:19].replace("T", " "),
            )

    console.print(table)


@click.command("show")
@click.argument("ref")
@click.option("--at", "version", default=None, help="Show an older version (commit id from `log`).")
@click.pass_context
def show_cmd(ctx, ref: str, version: str | None):
    """Print the stored JSON of REF (e.g. issue/12, comment/345, or 12)."""
    store = ctx.obj["store"]
    ref = _normalize_ref(ref)
    if store.resolve(ref) is None:
        raise click.ClickException(f"No mirrored resource named {ref}.")
    console.print_json(json.dumps(_load(store, version or ref)))


@click.command("log")
@click.argument("ref")
@click.pass_context
def log_cmd(ctx, ref: str):
    """Show every stored version of REF, newest first."""
    store = ctx.obj["store"]
    ref = _normalize_ref(ref)
    versions = store.history(ref)
    if not versions:
        raise click.ClickException(f"No mirrored resource named {ref}.")

    table = Table(title=f"History — {ref}", show_header=True, header_style="bold cyan")
    table.add_column("Version", width=8)
    table.add_column("Date", width=20)
    table.add_column("Author", max_width=20)
    table.add_column("Message", max_width=60)
    for v in versions:
        table.add_row(v.commit[:7], v.date[:19].replace("T", " "), escape(v.author), escape(v.message))

    console.print(table)

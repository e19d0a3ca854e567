"""CLI entry point for issuemirror.

Commands:
  sync  — mirror issues and comments from a remote into the local store
  list  — list mirrored resources (read-only, no network)
  show  — print the latest stored version of one resource
  log   — show the version history of one resource
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from issuemirror_cli.commands.browse import list_cmd, log_cmd, show_cmd
from issuemirror_cli.commands.sync import sync_cmd


def _build_store(config: dict, create: bool):
    """Open the git repository that holds the mirror.

    Only ``sync`` may create it; the read commands must not leave an empty
    repository behind when pointed at the wrong path.
    """
    from issuemirror_store.git import GitStore
    from issuemirror_store.models import StoreError

    try:
        return GitStore(config["store_path"], namespace=config["ref_namespace"], create=create)
    except StoreError as e:
        raise click.UsageError(f"Cannot open mirror store at {config['store_path']}: {e}") from e


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("issuemirror"),
    prog_name="issuemirror",
)
@click.option(
    "--config",
    "config_path",
    default=".issuemirror.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="ISSUEMIRROR_CONFIG",
)
@click.option("--store", "store_path", default=None, help="Git repository holding the mirror. Overrides config file.")
@click.option("--verbose", "-v", is_flag=True, help="Log every request and store decision.")
@click.pass_context
def main(ctx: click.Context, config_path: str, store_path: str | None, verbose: bool):
    """Mirror GitHub issues and comments into a versioned local git store."""
    from issuemirror_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path, cli_overrides={"store_path": store_path})

    store = _build_store(config, create=ctx.invoked_subcommand == "sync")
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(sync_cmd)
main.add_command(list_cmd)
main.add_command(show_cmd)
main.add_command(log_cmd)

"""CLI entry point for prwarden.

Commands:
  serve    run the webhook server and review workers
  history  list stored reviews
  show     print one review with its findings
  stats    aggregate findings across stored reviews
"""

from __future__ import annotations

import importlib.metadata

import click

from prwarden_cli.commands.history import history_cmd
from prwarden_cli.commands.serve import serve_cmd
from prwarden_cli.commands.show import show_cmd
from prwarden_cli.commands.stats import stats_cmd


def _build_store(config: dict):
    """Open the configured SQLite store.

    Read commands open the same database file the server writes to.
    """
    from prwarden_store.sqlite import SQLiteStore

    return SQLiteStore(db_path=config.get("store_path", ".prwarden.db"))


@click.group()
@click.version_option(
    version=importlib.metadata.version("prwarden"),
    prog_name="prwarden",
)
@click.option(
    "--config",
    "config_path",
    default=".prwarden.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRWARDEN_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """Webhook-driven AI code review for GitHub pull requests."""
    from prwarden_core.config import load_config
    from prwarden_cli.auth import resolve_github_token

    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config
    ctx.obj["build_store"] = _build_store


main.add_command(serve_cmd)
main.add_command(history_cmd)
main.add_command(show_cmd)
main.add_command(stats_cmd)

"""serve command: run the webhook server."""

from __future__ import annotations

import logging

import click
from rich.console import Console

console = Console()


@click.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True, help="Interface to bind.")
@click.option("--port", default=3001, show_default=True, type=int, help="Port to listen on.")
@click.option(
    "--model",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option(
    "--sync",
    "sync_processing",
    is_flag=True,
    help="Run each review inside the webhook request instead of on background workers.",
)
@click.pass_context
def serve_cmd(ctx, host: str, port: int, model: str | None, sync_processing: bool):
    """Start the webhook endpoint and review query API.

    \b
    Environment variables:
      GITHUB_WEBHOOK_SECRET        Shared secret configured on the GitHub webhook
      GITHUB_TOKEN                 GitHub token for fetching diffs (or use gh CLI)
      OPENAI_API_KEY               Required when using --model openai
      ANTHROPIC_API_KEY            Required when using --model anthropic
      PRWARDEN_REQUIRE_SIGNATURE   Set to false to accept unsigned events (development only)
    """
    import uvicorn

    from prwarden_server.app import build_app

    config = ctx.obj["config"]
    if model is not None:
        config["model"] = model
    if sync_processing:
        config["async_processing"] = False

    if config["model"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")
    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")
    if config.get("require_signature", True) and not config.get("webhook_secret"):
        raise click.UsageError(
            "GITHUB_WEBHOOK_SECRET is not set. Set it, or set PRWARDEN_REQUIRE_SIGNATURE=false for local testing."
        )

    logging.basicConfig(
        level=getattr(logging, str(config.get("log_level", "INFO")).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app = build_app(config)
    console.print(f"[bold green]prwarden listening on http://{host}:{port}[/bold green]")
    console.print(f"[dim]Webhook URL: http://{host}:{port}/api/v1/webhooks/github · store: {config['store_path']}[/dim]")
    uvicorn.run(app, host=host, port=port, log_level=str(config.get("log_level", "INFO")).lower())

"""history command: list stored reviews."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prwarden_cli.commands import open_store

console = Console()

STATUS_STYLE = {
    "pending": "dim",
    "processing": "cyan",
    "completed": "green",
    "failed": "red",
}


@click.command("history")
@click.option("--repo", default=None, help="Only show reviews for this repository (owner/name).")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def history_cmd(ctx, repo: str | None, limit: int):
    """Show stored reviews, most recent first."""
    store = open_store(ctx)

    details = store.list_reviews(repo=repo)[:limit]
    if not details:
        console.print("[yellow]No reviews found.[/yellow]")
        return

    title = f"Review History: {repo}" if repo else "Review History"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", justify="right", width=6)
    table.add_column("Repository", max_width=30)
    table.add_column("PR", width=6)
    table.add_column("Title", max_width=40)
    table.add_column("Status", width=11)
    table.add_column("Score", justify="right", width=6)
    table.add_column("Findings", justify="right", width=9)
    table.add_column("Created At", width=20)

    for d in details:
        style = STATUS_STYLE.get(d.review.status, "white")
        table.add_row(
            str(d.review.id),
            d.repository.full_name,
            f"#{d.pull_request.number}",
            d.pull_request.title[:40],
            f"[{style}]{d.review.status}[/{style}]",
            str(d.review.score) if d.review.score is not None else "-",
            str(len(d.findings)),
            d.review.created_at[:19].replace("T", " "),
        )

    console.print(table)

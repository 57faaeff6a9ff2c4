"""show command: print one review with its findings."""

from __future__ import annotations

import click
from rich.console import Console

from prwarden_cli.commands import open_store
from prwarden_cli.commands.history import STATUS_STYLE

console = Console()

_SEVERITY_STYLE = {"high": "red", "medium": "yellow", "low": "blue"}


@click.command("show")
@click.argument("review_id", type=int)
@click.pass_context
def show_cmd(ctx, review_id: int):
    """Show a stored review and every finding attached to it."""
    store = open_store(ctx)

    detail = store.get_review(review_id)
    if detail is None:
        raise click.ClickException(f"Review {review_id} not found.")

    review, pr, repo = detail.review, detail.pull_request, detail.repository
    style = STATUS_STYLE.get(review.status, "white")
    console.print(f"\n[bold]{repo.full_name}#{pr.number}[/bold]  {pr.title}")
    console.print(
        f"Review {review.id} · [{style}]{review.status}[/{style}]"
        + (f" · score [bold]{review.score}[/bold]" if review.score is not None else "")
    )
    if review.summary:
        console.print(f"\n{review.summary}\n")

    if not detail.findings:
        console.print("[dim]No findings.[/dim]")
        return

    for f in detail.findings:
        sev_style = _SEVERITY_STYLE.get(f.severity, "white")
        location = f.file_path or ""
        if f.file_path and f.line_number:
            location += f":{f.line_number}"
        console.print(
            f"[{sev_style}]{f.severity.upper()}[/{sev_style}]  [bold]{f.category}[/bold]  [cyan]{location}[/cyan]"
        )
        console.print(f"  {f.content}")

"""stats command: aggregate findings across stored reviews."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.table import Table

from prwarden_cli.commands import open_store

console = Console()


@click.command("stats")
@click.option("--repo", default=None, help="Only count reviews for this repository (owner/name).")
@click.option("--top", default=10, show_default=True, help="Number of top entries to show per category.")
@click.pass_context
def stats_cmd(ctx, repo: str | None, top: int):
    """Show aggregated review statistics.

    Reports status counts, the average score of completed reviews, the
    category and severity distribution of findings, and the most flagged
    files, to surface systemic issues.
    """
    store = open_store(ctx)

    details = store.list_reviews(repo=repo)
    if not details:
        console.print("[yellow]No reviews found.[/yellow]")
        return

    status_counter: Counter[str] = Counter(d.review.status for d in details)
    scores = [d.review.score for d in details if d.review.status == "completed" and d.review.score is not None]
    category_counter: Counter[str] = Counter()
    severity_counter: Counter[str] = Counter()
    file_counter: Counter[str] = Counter()
    for d in details:
        for f in d.findings:
            category_counter[f.category] += 1
            severity_counter[f.severity] += 1
            if f.file_path:
                file_counter[f.file_path] += 1
    total_findings = sum(category_counter.values())

    # --- Summary ---
    console.print(f"\n[bold]Review stats{f' for [cyan]{repo}[/cyan]' if repo else ''}[/bold]")
    console.print(f"  Total reviews:  {len(details)}")
    for status in ("completed", "failed", "processing", "pending"):
        if status_counter.get(status):
            console.print(f"    {status}: {status_counter[status]}")
    console.print(f"  Total findings: {total_findings}")
    if scores:
        console.print(f"  Avg score:      {sum(scores) / len(scores):.1f}")

    # --- Category / severity breakdown ---
    if total_findings:
        table = Table(title="Findings Breakdown", show_header=True)
        table.add_column("Category", style="bold")
        table.add_column("Count", justify="right")
        table.add_column("% of total", justify="right")
        for category, count in category_counter.most_common():
            table.add_row(category, str(count), f"{count / total_findings * 100:.1f}%")
        console.print(table)

        sev_table = Table(title="Severity Breakdown", show_header=True)
        sev_table.add_column("Severity", style="bold")
        sev_table.add_column("Count", justify="right")
        _sev_style = {"high": "red", "medium": "yellow", "low": "blue"}
        for sev in ("high", "medium", "low"):
            style = _sev_style[sev]
            sev_table.add_row(f"[{style}]{sev}[/{style}]", str(severity_counter.get(sev, 0)))
        console.print(sev_table)

    # --- Most flagged files ---
    if file_counter:
        file_table = Table(title=f"Top {top} Most Flagged Files", show_header=True)
        file_table.add_column("File")
        file_table.add_column("Findings", justify="right")
        for file_path, count in file_counter.most_common(top):
            file_table.add_row(file_path, str(count))
        console.print(file_table)

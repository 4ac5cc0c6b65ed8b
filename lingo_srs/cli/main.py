"""
lingo-srs: Developer CLI for the review core.

A Rich terminal interface over a local SQLite review store, for inspecting
schedules and driving reviews by hand.

Commands:
- lingo-srs add       - Add a phrase card
- lingo-srs due       - List due items in review order
- lingo-srs session   - Preview the next study session
- lingo-srs review    - Grade an item
- lingo-srs list      - List items by status filter
- lingo-srs search    - Search phrases and translations
- lingo-srs sources   - Show items grouped by content source
- lingo-srs stats     - Show learning statistics
- lingo-srs export    - Write a JSON snapshot
- lingo-srs import    - Merge a JSON snapshot
- lingo-srs reset     - Clear the store
"""
from __future__ import annotations

import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from config import get_settings

from ..review.errors import SRSError
from ..review.models import ContentSource, ContentSourceType, Grade, ReviewItem, create_item, utcnow
from ..review.queries import StatusFilter, due_items, filter_by_status, study_session
from ..review.repository import ReviewItemRepository
from ..review.serialization import dump_snapshot, load_snapshot
from ..review.stats import (
    detailed_stats,
    estimate_session_minutes,
    group_by_source,
    next_review_label,
    search,
    summary,
)

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="lingo-srs",
    help="lingo-srs: spaced repetition for phrase learning",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STATUS_STYLES = {
    "new": "green",
    "learning": "yellow",
    "review": "cyan",
    "graduated": "bold magenta",
}


def style_status(status: str) -> str:
    color = STATUS_STYLES.get(status, "white")
    return f"[{color}]{status}[/{color}]"


# =============================================================================
# Helpers
# =============================================================================


@contextmanager
def repository_scope() -> Iterator[ReviewItemRepository]:
    """Open the configured repository and close it when the command ends."""
    repo = ReviewItemRepository.from_settings(get_settings())
    try:
        yield repo
    finally:
        repo.close()


def _load_items() -> list[ReviewItem]:
    with repository_scope() as repo:
        return repo.load()


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(1)


def _items_table(items: Iterable[ReviewItem], title: str | None = None) -> Table:
    now = utcnow()
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Phrase")
    table.add_column("Translation")
    table.add_column("Status")
    table.add_column("Interval", justify="right")
    table.add_column("Ease", justify="right")
    table.add_column("Next review")

    for item in items:
        table.add_row(
            item.id,
            escape(item.phrase),
            escape(item.translation),
            style_status(item.status.value),
            f"{item.interval_days}d",
            f"{item.ease_factor:.2f}",
            next_review_label(item, now),
        )
    return table


# =============================================================================
# Commands
# =============================================================================


@app.command()
def add(
    phrase: str = typer.Argument(..., help="Phrase being learned"),
    translation: str = typer.Argument(..., help="Translation shown as the answer"),
    source_type: ContentSourceType = typer.Option(
        ContentSourceType.TEXT, "--source-type", "-t", help="Kind of source content"
    ),
    source_id: str = typer.Option("manual", "--source-id", "-s", help="Source document id"),
    source_title: Optional[str] = typer.Option(None, "--title", help="Source display name"),
    url: Optional[str] = typer.Option(None, "--url", help="Source origin reference"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", help="Label (repeatable)"),
) -> None:
    """Add a new phrase card."""
    source = ContentSource(
        type=source_type,
        id=source_id,
        title=source_title or source_id,
        url=url,
    )
    with repository_scope() as repo:
        if repo.is_phrase_saved(phrase):
            console.print(f"[yellow]Already saved:[/yellow] {escape(phrase)}")
            raise typer.Exit(0)

        item = create_item(
            phrase,
            translation,
            source,
            tags=tags or (),
            ease_factor=repo.scheduler.config.initial_easiness,
        )
        try:
            repo.add(item)
        except SRSError as e:
            _fail(e)

    console.print(f"[green]Added[/green] {item.id}: {escape(phrase)}")


@app.command()
def due(
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum items to show"),
) -> None:
    """List items due now: new first, then most overdue."""
    items = list(due_items(_load_items(), utcnow()))
    if not items:
        console.print("[green]Nothing due. All caught up![/green]")
        return

    console.print(_items_table(items[:limit], title=f"Due now ({len(items)})"))


@app.command()
def session() -> None:
    """Preview the next study session."""
    settings = get_settings()
    queue = study_session(
        _load_items(),
        utcnow(),
        max_new=settings.srs_max_new_per_session,
        max_reviews=settings.srs_max_reviews_per_session,
    )
    if not queue:
        console.print("[green]Nothing to study right now.[/green]")
        return

    console.print(_items_table(queue, title="Study Session"))
    console.print(f"\n{len(queue)} cards (~{estimate_session_minutes(len(queue))} min)")


@app.command()
def review(
    item_id: str = typer.Argument(..., help="Item to grade"),
    grade: Grade = typer.Argument(..., help="again, hard, good or easy"),
    time_ms: int = typer.Option(0, "--time-ms", help="Time taken to answer"),
) -> None:
    """Grade an item and schedule its next review."""
    with repository_scope() as repo:
        try:
            repo.require(item_id)
            updated = repo.review(item_id, grade, utcnow(), time_spent_ms=time_ms)
        except SRSError as e:
            _fail(e)

    if updated is None:
        console.print("[yellow]A newer review is already stored; nothing changed.[/yellow]")
        raise typer.Exit(1)

    console.print(Panel(
        f"[bold]{escape(updated.phrase)}[/bold] -> {escape(updated.translation)}\n\n"
        f"Status: {style_status(updated.status.value)}\n"
        f"Interval: {updated.interval_days} days\n"
        f"Ease: {updated.ease_factor:.2f}\n"
        f"Next review: {next_review_label(updated, utcnow())}",
        title=f"Graded {grade.value}",
        border_style="red" if grade is Grade.AGAIN else "green",
    ))


@app.command(name="list")
def list_items(
    status_filter: StatusFilter = typer.Option(
        StatusFilter.ALL, "--filter", "-f", help="all, new, due or mastered"
    ),
) -> None:
    """List items by status filter."""
    items = filter_by_status(_load_items(), status_filter, utcnow())
    console.print(_items_table(items, title=f"{status_filter.value} ({len(items)})"))


@app.command(name="search")
def search_items(
    query: str = typer.Argument("", help="Text to look for"),
) -> None:
    """Search phrases and translations (case-insensitive)."""
    items = search(_load_items(), query)
    console.print(_items_table(items, title=f"Matches ({len(items)})"))


@app.command()
def sources() -> None:
    """Show items grouped by content source."""
    groups = group_by_source(_load_items())

    table = Table(title="Sources")
    table.add_column("Type")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Items", justify="right")

    for group in groups.values():
        table.add_row(
            group.source.type.value,
            escape(group.source.id),
            escape(group.source.title),
            str(group.count),
        )

    console.print(table)


@app.command()
def stats() -> None:
    """Show learning statistics and progress."""
    now = utcnow()
    with repository_scope() as repo:
        items = repo.load()
        reviews = repo.reviews()
    counts = summary(items, now)
    details = detailed_stats(items, reviews, now)

    console.print("\n[bold cyan]Learning Statistics[/bold cyan]")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total items", str(counts.total))
    table.add_row("New", str(counts.new_count))
    table.add_row("Due now", str(counts.due_count))
    table.add_row("Mastered", str(counts.mastered_count))
    table.add_row("Learning / Review", f"{details.learning_cards} / {details.review_cards}")
    table.add_row("Reviewed today", str(details.reviewed_today))
    table.add_row("Total reviews", str(details.total_reviews))
    table.add_row("Retention rate", f"{details.retention_rate:.1f}%")
    table.add_row("Average ease", f"{details.average_ease_factor:.2f}")
    table.add_row("Streak", f"{details.streak_days} days")

    console.print(table)


@app.command()
def export(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="File to write (stdout if omitted)"
    ),
) -> None:
    """Write every item as a JSON snapshot."""
    with repository_scope() as repo:
        data = dump_snapshot(repo.snapshot())
    if output is None:
        sys.stdout.write(data + "\n")
        return

    output.write_text(data, encoding="utf-8")
    console.print(f"[green]Exported snapshot to {output}[/green]")


@app.command(name="import")
def import_snapshot(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Snapshot JSON file"),
) -> None:
    """Merge a JSON snapshot (newer reviews win)."""
    try:
        items = load_snapshot(path.read_text(encoding="utf-8"))
        with repository_scope() as repo:
            applied = repo.merge(items)
    except SRSError as e:
        _fail(e)

    console.print(f"[green]Merged {applied} of {len(items)} items[/green]")


@app.command()
def reset(
    confirm: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Delete all items and review history."""
    if not confirm and not Confirm.ask("Delete ALL review items? This cannot be undone!", default=False):
        raise typer.Exit(0)

    with repository_scope() as repo:
        count = repo.reset()
    console.print(f"[green]Removed {count} items.[/green]")


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level.upper(),
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()

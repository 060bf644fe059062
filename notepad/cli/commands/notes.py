"""
Note Commands.

Create, edit, remove, list and search notes, and run a sync cycle.
Each command opens the runtime, does its work through NoteService and
closes it again.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from notepad.core.dependencies import open_runtime
from notepad.core.exceptions import ApplicationError
from notepad.core.logging import get_logger
from notepad.schemas.note import NoteRead
from notepad.services.note import NoteService

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

T = TypeVar("T")


def _run(
    ctx: typer.Context,
    operation: Callable[[NoteService], Awaitable[T]],
    remote_enabled: bool | None = None,
) -> T:
    """Run an operation against a fresh runtime, exiting 1 if anything failed."""
    database_url = ctx.obj.database_url if ctx.obj else None
    errors: list[str] = []

    async def runner() -> T:
        async with open_runtime(database_url, remote_enabled) as runtime:
            runtime.service.on_error(errors.append)
            return await operation(runtime.service)

    try:
        result = asyncio.run(runner())
    except ApplicationError as e:
        logger.error("Command failed", extra={"code": e.code, "error": e.message})
        err_console.print(f"[red]Error: {escape(e.message)}[/red]")
        raise typer.Exit(1)

    for message in errors:
        err_console.print(f"[red]{escape(message)}[/red]")
    if errors:
        raise typer.Exit(1)
    return result


def _notes_table(notes: list[NoteRead], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan")
    table.add_column("Created")
    table.add_column("Edited")
    for note in notes:
        table.add_row(
            note.id,
            escape(note.title),
            note.created_time.strftime("%Y-%m-%d %H:%M"),
            note.last_edit_time.strftime("%Y-%m-%d %H:%M"),
        )
    return table


def add(
    ctx: typer.Context,
    content: str = typer.Argument(..., help="Note content; the text before the first '.' is the title"),
) -> None:
    """Create a note."""
    note = _run(ctx, lambda service: service.create(content))
    console.print(f"[green]Created[/green] {note.id} ({escape(note.title)})")


def edit(
    ctx: typer.Context,
    note_id: str = typer.Argument(..., help="Note ID"),
    content: str = typer.Argument(..., help="New note content"),
) -> None:
    """Replace the content of a note."""
    note = _run(ctx, lambda service: service.update(note_id, content))
    console.print(f"[green]Updated[/green] {note.id} ({escape(note.title)})")


def rm(
    ctx: typer.Context,
    note_id: str = typer.Argument(..., help="Note ID"),
) -> None:
    """Delete a note. Deleting an unknown id does nothing."""
    deleted = _run(ctx, lambda service: service.delete(note_id))
    if deleted:
        console.print(f"[green]Deleted[/green] {note_id}")
    else:
        console.print(f"[yellow]No note with id {note_id}[/yellow]")


def show(
    ctx: typer.Context,
    note_id: str = typer.Argument(..., help="Note ID"),
) -> None:
    """Display one note."""
    note = _run(ctx, lambda service: service.get(note_id))
    if note is None:
        err_console.print(f"[red]Note not found: {note_id}[/red]")
        raise typer.Exit(1)

    console.print(Panel(
        f"{escape(note.content)}\n\n"
        f"[dim]Created: {note.created_time.isoformat()}  "
        f"Edited: {note.last_edit_time.isoformat()}  "
        f"Theme: {escape(note.background_theme)}[/dim]",
        title=escape(note.title),
        subtitle=note.id,
    ))


def list_notes(
    ctx: typer.Context,
    ascending: Optional[bool] = typer.Option(
        None, "--asc/--desc", help="Oldest first or newest first (default: newest first)",
    ),
    page: int = typer.Option(0, "--page", "-p", min=0, help="Zero-based page number"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Show every note"),
) -> None:
    """List notes one page at a time."""

    async def load_all(service: NoteService) -> list[NoteRead]:
        if ascending is not None:
            await service.set_sort_order(ascending)
        while await service.load_more():
            pass
        return service.visible_notes

    if show_all:
        notes = _run(ctx, load_all)
        title = f"All notes ({len(notes)})"
    else:
        result = _run(ctx, lambda service: service.page(ascending, page))
        notes = result.items
        title = f"Notes, page {page} ({len(notes)} of {result.total})"

    if not notes:
        console.print("[dim]No notes[/dim]")
        return
    console.print(_notes_table(notes, title))


def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text to look for in titles and content"),
) -> None:
    """Search notes by title or content (case-insensitive)."""
    notes = _run(ctx, lambda service: service.search(query))
    if not notes:
        console.print(f"[dim]No notes match '{escape(query)}'[/dim]")
        return
    console.print(_notes_table(notes, f"Matches for '{escape(query)}'"))


def count(ctx: typer.Context) -> None:
    """Print the number of stored notes."""
    total = _run(ctx, lambda service: service.count())
    console.print(total)


def sync(ctx: typer.Context) -> None:
    """Run one sync cycle with the remote document store."""
    report = _run(ctx, lambda service: service.sync(), remote_enabled=True)

    table = Table(title=f"Sync {report.status.value}")
    table.add_column("Step", style="cyan")
    table.add_column("Notes", justify="right")
    table.add_row("Pulled", str(report.pulled))
    table.add_row("Merged", str(report.merged))
    table.add_row("Pushed", str(report.pushed))
    table.add_row("Push failed", str(report.push_failed))
    table.add_row("Conflicts (local kept)", str(len(report.conflict_ids)))
    console.print(table)

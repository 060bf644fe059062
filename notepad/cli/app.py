"""
Notepad CLI.

Command-line front end for the note service.
Built with Typer for type-safe commands and Rich for formatted output.

Usage:
    notepad --help
    notepad add "Groceries. Milk, eggs"
    notepad list --asc --page 1
    notepad list --all
    notepad search milk
    notepad edit <id> "Groceries. Milk, eggs, bread"
    notepad rm <id>
    notepad sync
    notepad config remote

Options:
    --verbose, -v     Enable verbose output (INFO level logging)
    --debug, -d       Enable debug mode (DEBUG level logging)
    --db-url          SQLAlchemy URL of the local store (env NOTEPAD_DATABASE_URL)
"""

from dataclasses import dataclass
from typing import Optional

import structlog
import typer
from rich.console import Console

from notepad.cli.commands import notes, system
from notepad.core.config import validate_project_root
from notepad.core.logging import get_logger, setup_logging

app = typer.Typer(
    name="notepad",
    help="Notepad - write, search and sync notes from the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.command("add")(notes.add)
app.command("edit")(notes.edit)
app.command("rm")(notes.rm)
app.command("show")(notes.show)
app.command("list")(notes.list_notes)
app.command("search")(notes.search)
app.command("count")(notes.count)
app.command("sync")(notes.sync)
app.command("info")(system.info)
app.command("config")(system.config)


@dataclass
class CLIOptions:
    """Global options shared with every command through the Typer context."""

    database_url: str | None = None


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output (INFO level logging)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug mode (DEBUG level logging)",
    ),
    db_url: Optional[str] = typer.Option(
        None,
        "--db-url",
        envvar="NOTEPAD_DATABASE_URL",
        help="SQLAlchemy URL of the local note store",
    ),
) -> None:
    """
    Notepad CLI.

    Notes live in a local SQLite store and can be synced to a remote
    document store (see config/settings/remote.yaml).
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")
    structlog.contextvars.bind_contextvars(source="cli")
    if debug:
        console.print("[dim]Debug mode enabled[/dim]")

    ctx.obj = CLIOptions(database_url=db_url)
    get_logger(__name__).debug(
        "CLI invoked",
        extra={"command": ctx.invoked_subcommand, "log_level": log_level},
    )


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()

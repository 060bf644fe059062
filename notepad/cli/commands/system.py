"""
System Commands.

Show where notes live and what the loaded configuration says.
"""

from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.tree import Tree

from notepad import __version__
from notepad.core.config import SECTION_SCHEMAS, AppConfig, get_app_config, get_database_url

console = Console()

SECTIONS = tuple(SECTION_SCHEMAS)


def _load_config() -> AppConfig:
    try:
        return get_app_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)


def info() -> None:
    """Display application information and the note store location."""
    app_config = _load_config()
    application = app_config.application
    remote = app_config.remote if app_config.features.remote_sync_enabled else None

    console.print(Panel(
        f"[bold]{application.name}[/bold] {application.version} (package {__version__})\n"
        f"{application.description}\n\n"
        f"Local store: {get_database_url()}\n"
        f"Remote sync: {f'{remote.base_url} ({remote.collection})' if remote else 'disabled'}\n"
        f"Batch size: {application.pagination.batch_size}",
        title="Application Info",
    ))


def config(
    section: Optional[str] = typer.Argument(None, help=f"Config section to show ({', '.join(SECTIONS)})"),
) -> None:
    """Display configuration settings, all sections or just one."""
    app_config = _load_config()
    if section is not None and section not in SECTIONS:
        console.print(f"[red]Unknown section: {section}[/red]")
        console.print(f"Available sections: {', '.join(SECTIONS)}")
        raise typer.Exit(1)

    for name in [section] if section else SECTIONS:
        tree = Tree(f"[bold cyan]{name}[/bold cyan]")
        _add_branch(tree, getattr(app_config, name).model_dump())
        console.print(tree)
        console.print()


def _add_branch(node: Tree, values: dict[str, Any]) -> None:
    for key, value in values.items():
        if isinstance(value, dict):
            _add_branch(node.add(f"[cyan]{key}[/cyan]"), value)
        else:
            node.add(f"[cyan]{key}[/cyan]: {value}")

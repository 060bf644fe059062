"""
CLI Client Module.

Command-line client built with Typer for working with notes.

Architecture:
- CLI is a thin presentation layer
- All business logic lives in NoteService
- Errors arrive through the service's error channel and are printed in red

Usage:
    notepad --help
    notepad add "Groceries. Milk, eggs"
    notepad list --all
"""

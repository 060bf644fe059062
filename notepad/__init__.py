"""
Notepad.

Note persistence and synchronization core.

- core/: Configuration, logging, database, resilience, wiring
- models/: SQLAlchemy models
- schemas/: Pydantic snapshots and the remote document layout
- repositories/: Data access on a session
- stores/: Local system of record and remote document store
- services/: Sync engine and the NoteService façade
- events/: Event envelope and in-process bus
- cli/: Command-line client (Typer + Rich)
"""

__version__ = "0.1.0"

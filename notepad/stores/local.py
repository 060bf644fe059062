"""
Local Note Store.

Durable on-device storage for notes, built on the shared Database.

Mutations (create, update, delete, merge inserts) are serialized through
one asyncio.Lock per store and each runs in its own transaction. Reads run
as a single SELECT on their own session, so they never observe a
half-applied write.

Usage:
    store = LocalNoteStore(database)
    note = await store.create("Groceries.\\nMilk, eggs")
    notes = await store.list(sort_ascending=False, limit=20)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from notepad.core.database import Database
from notepad.core.exceptions import EntityCreationError, StorageError
from notepad.core.logging import get_logger
from notepad.core.utils import fold_text, utc_now
from notepad.models.base import new_note_id
from notepad.models.note import DEFAULT_THEME, Note, derive_title
from notepad.repositories.note import NoteRepository
from notepad.schemas.note import NoteRead

logger = get_logger(__name__)

_ID_CHUNK = 500


def _snapshot(note: Note) -> NoteRead:
    return NoteRead.model_validate(note)


def _translate(operation: str, error: SQLAlchemyError) -> StorageError:
    """Map a SQLAlchemy failure onto the storage error taxonomy."""
    message = str(error).lower()
    if isinstance(error, OperationalError) and "no such table" in message:
        logger.error(
            "Note entity missing",
            extra={"operation": operation, "error": str(error)},
        )
        return EntityCreationError(f"Note storage is not initialized ({operation})")
    if isinstance(error, IntegrityError):
        logger.warning(
            "Database integrity error",
            extra={"operation": operation, "error": str(error)},
        )
        return StorageError(f"Constraint violation during {operation}")
    logger.error(
        "Database error",
        extra={"operation": operation, "error": str(error)},
    )
    return StorageError(f"Storage operation failed: {operation}")


class LocalNoteStore:
    """
    Local system of record for notes.

    Every method returns NoteRead snapshots. Failures surface as
    StorageError (or its EntityCreationError subclass); a missing id on
    update surfaces as NotFoundError.
    """

    def __init__(
        self,
        database: Database,
        default_theme: str = DEFAULT_THEME,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._database = database
        self._default_theme = default_theme
        self._clock = clock
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[NoteRepository]:
        try:
            async with self._database.session() as session:
                yield NoteRepository(session)
        except SQLAlchemyError as e:
            raise _translate(operation, e) from e

    @asynccontextmanager
    async def _writing(self, operation: str) -> AsyncIterator[NoteRepository]:
        async with self._write_lock:
            try:
                async with self._database.session() as session, session.begin():
                    yield NoteRepository(session)
            except SQLAlchemyError as e:
                raise _translate(operation, e) from e

    async def create(self, content: str) -> NoteRead:
        """
        Create and persist a new note.

        Args:
            content: Note content

        Returns:
            The stored note

        Raises:
            StorageError: If the write fails
        """
        now = self._clock()
        async with self._writing("create") as repo:
            note = await repo.create(
                id=new_note_id(),
                title=derive_title(content),
                content=content,
                created_time=now,
                last_edit_time=now,
                background_theme=self._default_theme,
            )
            snapshot = _snapshot(note)
        logger.debug("Note created", extra={"note_id": snapshot.id})
        return snapshot

    async def update(self, note_id: str, new_content: str) -> NoteRead:
        """
        Replace the content of a note, re-deriving its title.

        Raises:
            NotFoundError: If no note has this id
            StorageError: If the write fails
        """
        async with self._writing("update") as repo:
            existing = await repo.get_by_id(note_id)
            edited = max(self._clock(), existing.created_time)
            note = await repo.update(
                existing,
                content=new_content,
                title=derive_title(new_content),
                last_edit_time=edited,
            )
            snapshot = _snapshot(note)
        logger.debug("Note updated", extra={"note_id": note_id})
        return snapshot

    async def delete(self, note_id: str) -> bool:
        """
        Delete a note. Deleting a missing id is a no-op.

        Returns:
            True if a note was removed
        """
        async with self._writing("delete") as repo:
            deleted = await repo.delete_if_exists(note_id)
        logger.debug("Note delete", extra={"note_id": note_id, "deleted": deleted})
        return deleted

    async def get(self, note_id: str) -> NoteRead | None:
        """Get a note by id, or None."""
        async with self._reading("get") as repo:
            note = await repo.get_by_id_or_none(note_id)
            return _snapshot(note) if note is not None else None

    async def list(
        self,
        sort_ascending: bool = True,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[NoteRead]:
        """List notes by creation time (ties by id)."""
        async with self._reading("list") as repo:
            notes = await repo.list_ordered(sort_ascending, limit=limit, offset=offset)
            return [_snapshot(note) for note in notes]

    async def all_notes(self) -> list[NoteRead]:
        """Every local note, oldest first."""
        return await self.list(sort_ascending=True)

    async def search(self, query: str, sort_ascending: bool = True) -> list[NoteRead]:
        """
        Case- and accent-insensitive substring search over content and title.

        An empty or whitespace-only query returns no notes.
        """
        term = query.strip()
        if not fold_text(term):
            return []
        async with self._reading("search") as repo:
            notes = await repo.search(term, ascending=sort_ascending)
            return [_snapshot(note) for note in notes]

    async def count(self) -> int:
        """Total number of notes."""
        async with self._reading("count") as repo:
            return await repo.count()

    async def insert_many(self, notes: Iterable[NoteRead]) -> list[NoteRead]:
        """
        Materialize notes that came from elsewhere, keeping all field values.

        Ids already present locally are skipped, so an existing local note
        is never overwritten. All inserts share one transaction.

        Returns:
            The notes actually inserted
        """
        candidates: dict[str, NoteRead] = {}
        for note in notes:
            candidates.setdefault(note.id, note)
        if not candidates:
            return []

        async with self._writing("merge") as repo:
            ids = list(candidates)
            present: set[str] = set()
            for start in range(0, len(ids), _ID_CHUNK):
                present |= await repo.get_ids(ids[start:start + _ID_CHUNK])
            fresh = [note for note_id, note in candidates.items() if note_id not in present]
            if fresh:
                await repo.insert_snapshots(fresh)

        logger.debug(
            "Merged notes into local store",
            extra={"inserted": len(fresh), "skipped": len(present)},
        )
        return fresh

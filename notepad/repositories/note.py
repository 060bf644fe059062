"""
Note Repository.

Data access layer for notes. Handles all database operations
for the Note model.
"""

from collections.abc import Iterable

from sqlalchemy import Select, String, func, or_, select

from notepad.core.utils import fold_text
from notepad.models.note import Note
from notepad.repositories.base import BaseRepository
from notepad.schemas.note import NoteRead


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note model.

    Inherits standard CRUD operations from BaseRepository
    and adds ordering, search and merge inserts.
    """

    model = Note

    @staticmethod
    def _ordered(query: Select, ascending: bool) -> Select:
        """Order by creation time, ties broken by id, both in one direction."""
        if ascending:
            return query.order_by(Note.created_time.asc(), Note.id.asc())
        return query.order_by(Note.created_time.desc(), Note.id.desc())

    async def list_ordered(
        self,
        ascending: bool = True,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Note]:
        """
        Get notes ordered by creation time.

        Args:
            ascending: Oldest first when True, newest first otherwise
            limit: Maximum number of notes to return (None for all)
            offset: Number of notes to skip

        Returns:
            List of notes
        """
        query = self._ordered(select(Note), ascending)
        if limit is not None:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def search(self, query: str, ascending: bool = True) -> list[Note]:
        """
        Search notes by content or title (case- and accent-insensitive substring).

        Both sides go through fold_text; the column side uses the
        note_fold SQL function registered by Database on each connection.

        Args:
            query: Non-empty search string; % and _ match literally
            ascending: Result order by creation time

        Returns:
            List of notes matching the query
        """
        needle = fold_text(query)
        statement = select(Note).where(
            or_(
                func.note_fold(Note.content, type_=String).contains(needle, autoescape=True),
                func.note_fold(Note.title, type_=String).contains(needle, autoescape=True),
            )
        )
        result = await self.session.execute(self._ordered(statement, ascending))
        return list(result.scalars().all())

    async def get_ids(self, ids: Iterable[str] | None = None) -> set[str]:
        """Get the ids present locally, optionally restricted to a candidate set."""
        statement = select(Note.id)
        if ids is not None:
            statement = statement.where(Note.id.in_(list(ids)))
        result = await self.session.execute(statement)
        return set(result.scalars().all())

    async def insert_snapshots(self, notes: Iterable[NoteRead]) -> list[Note]:
        """
        Insert notes keeping their identity and timestamps.

        Callers are expected to filter out ids that already exist.
        """
        instances = [
            Note(
                id=note.id,
                title=note.title,
                content=note.content,
                created_time=note.created_time,
                last_edit_time=note.last_edit_time,
                background_theme=note.background_theme,
            )
            for note in notes
        ]
        self.session.add_all(instances)
        await self.session.flush()
        return instances

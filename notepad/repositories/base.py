"""
Base Repository.

Primary-key CRUD shared by repositories. A repository only issues
statements on the session it was given; the caller owns the transaction
and any locking around it.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from notepad.core.exceptions import NotFoundError
from notepad.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Subclasses bind the mapped class:

        class NoteRepository(BaseRepository[Note]):
            model = Note
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id_or_none(self, id: str) -> ModelType | None:
        return await self.session.get(self.model, id)

    async def get_by_id(self, id: str) -> ModelType:
        """Raises NotFoundError when no row has this primary key."""
        instance = await self.get_by_id_or_none(id)
        if instance is None:
            raise NotFoundError(f"{self.model.__name__} {id} not found")
        return instance

    async def create(self, **values: Any) -> ModelType:
        """Add a row and flush so server-side defaults are loaded."""
        instance = self.model(**values)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, instance: ModelType, **values: Any) -> ModelType:
        """Assign mapped attributes on a loaded row and flush."""
        for key, value in values.items():
            if not hasattr(self.model, key):
                raise AttributeError(f"{self.model.__name__} has no column {key!r}")
            setattr(instance, key, value)
        await self.session.flush()
        return instance

    async def delete_if_exists(self, id: str) -> bool:
        """Returns False when there was nothing to delete."""
        result = await self.session.execute(delete(self.model).where(self.model.id == id))
        return result.rowcount > 0

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

"""
Note Schemas.

Pydantic schemas for notes as they leave the stores and as they travel
to and from the remote document store.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from notepad.core.utils import as_naive_utc
from notepad.models.note import DEFAULT_THEME, derive_title


class NoteRead(BaseModel):
    """
    Immutable snapshot of a stored note.

    Stores hand these out instead of live ORM rows, so a caller never holds
    an object another store operation could mutate underneath it.
    """

    id: str = Field(description="Note unique identifier")
    title: str = Field(description="Title derived from content")
    content: str = Field(description="Note content")
    created_time: datetime = Field(description="Creation timestamp (UTC)")
    last_edit_time: datetime = Field(description="Last content edit timestamp (UTC)")
    background_theme: str = Field(default=DEFAULT_THEME, description="Cosmetic theme tag")

    model_config = ConfigDict(from_attributes=True, frozen=True)


class RemoteNoteDocument(BaseModel):
    """
    A note as stored in the remote document store.

    Wire layout (keys are camelCase, the key of the document is ``uuid``):

        {"uuid": "...", "title": "...", "content": "...",
         "createdTime": "2025-02-12T10:00:00", "lastEditTime": "...",
         "backgroundTheme": "Default"}
    """

    uuid: str = Field(min_length=1)
    title: str = ""
    content: str = ""
    created_time: datetime = Field(alias="createdTime")
    last_edit_time: datetime = Field(alias="lastEditTime")
    background_theme: str = Field(default=DEFAULT_THEME, alias="backgroundTheme")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("uuid")
    @classmethod
    def _canonical_uuid(cls, value: str) -> str:
        try:
            return str(UUID(value))
        except ValueError as e:
            raise ValueError(f"uuid is not a valid UUID: {value!r}") from e

    @field_validator("created_time", "last_edit_time")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        return as_naive_utc(value)

    @model_validator(mode="after")
    def _edit_not_before_creation(self) -> "RemoteNoteDocument":
        if self.last_edit_time < self.created_time:
            self.last_edit_time = self.created_time
        return self

    @classmethod
    def from_note(cls, note: NoteRead) -> "RemoteNoteDocument":
        """Build the remote document for a local note."""
        return cls(
            uuid=note.id,
            title=note.title,
            content=note.content,
            created_time=note.created_time,
            last_edit_time=note.last_edit_time,
            background_theme=note.background_theme,
        )

    def to_note(self) -> NoteRead:
        """
        Convert to a local note snapshot.

        The title is re-derived from content so a remote copy can never
        carry a title that disagrees with its content.
        """
        return NoteRead(
            id=self.uuid,
            title=derive_title(self.content),
            content=self.content,
            created_time=self.created_time,
            last_edit_time=self.last_edit_time,
            background_theme=self.background_theme,
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialize using the remote key names."""
        return self.model_dump(mode="json", by_alias=True)

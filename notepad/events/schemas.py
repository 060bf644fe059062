"""
Event Schemas.

Standardized event envelope and note domain event types.
All events published through the note event bus use the EventEnvelope base.

Naming convention for event_type: domain.entity.action (dot notation)

Usage:
    from notepad.events.schemas import NoteCreated

    event = NoteCreated(
        source="note-service",
        correlation_id=session_id,
        payload={"note_id": note.id, "title": note.title},
    )
"""

from uuid import uuid4

from pydantic import BaseModel, Field

from notepad.core.utils import utc_now


class EventEnvelope(BaseModel):
    """Base event envelope. Every event inherits from it.

    Fields:
        event_id: Unique event identifier (auto-generated UUID)
        event_type: Domain event type in dot notation (e.g. notes.note.created)
        event_version: Schema version for forward compatibility
        timestamp: ISO 8601 UTC timestamp
        source: Service/module that published the event
        correlation_id: Session ID tying together events of one service instance
        payload: Event-specific data
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str
    event_version: int = 1
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    source: str
    correlation_id: str
    payload: dict = Field(default_factory=dict)


class NotesChanged(EventEnvelope):
    """Base for every event after which the visible note list may differ."""

    event_type: str = "notes.list.changed"


class NoteCreated(NotesChanged):
    """Published when a new note is created."""

    event_type: str = "notes.note.created"


class NoteUpdated(NotesChanged):
    """Published when a note's content is replaced."""

    event_type: str = "notes.note.updated"


class NoteDeleted(NotesChanged):
    """Published when a note is removed."""

    event_type: str = "notes.note.deleted"


class NotesMerged(NotesChanged):
    """Published when a sync cycle materialized remote notes locally."""

    event_type: str = "notes.sync.merged"


class PageLoaded(NotesChanged):
    """Published when the visible window grew."""

    event_type: str = "notes.page.loaded"


class SortOrderChanged(NotesChanged):
    """Published when the sort direction was toggled."""

    event_type: str = "notes.sort.changed"


class ErrorReported(EventEnvelope):
    """Published when an operation failed; payload carries a readable message."""

    event_type: str = "notes.error.reported"

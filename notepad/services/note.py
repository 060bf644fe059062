"""
Note Service.

The façade a presentation layer talks to. Orchestrates the local store,
the optional remote store and the sync engine, and keeps the state a list
view needs: the visible window of notes, the sort direction and the load
state.

No storage or network fault escapes this class. Every failure is turned
into a readable message on the error channel and the call returns a safe
default (None, [], 0, False) with the visible state unchanged.

Usage:
    service = NoteService(local_store, remote=remote_store)
    service.on_error(lambda message: print(message))
    service.on_changed(lambda: redraw(service.visible_notes))

    await service.load_more()
    await service.create("Groceries.\\nMilk, eggs")
    service.schedule_search("milk", show_results)
    await service.aclose()
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from notepad.core.concurrency import BackgroundTasks, Debouncer
from notepad.core.exceptions import ApplicationError, ValidationError
from notepad.core.pagination import (
    DEFAULT_BATCH_SIZE,
    LoadState,
    PagedResult,
    PaginationWindow,
    page_bounds,
)
from notepad.events.bus import NoteEventBus
from notepad.events.schemas import (
    ErrorReported,
    EventEnvelope,
    NoteCreated,
    NoteDeleted,
    NotesChanged,
    NotesMerged,
    NoteUpdated,
    PageLoaded,
    SortOrderChanged,
)
from notepad.schemas.note import NoteRead
from notepad.services.base import BaseService
from notepad.services.sync import SyncEngine, SyncReport
from notepad.stores.local import LocalNoteStore
from notepad.stores.remote import RemoteNoteStore

EVENT_SOURCE = "note-service"


class NoteService(BaseService):
    """
    Service for note business logic and list state.

    Args:
        local: Local system of record
        remote: Remote document store; None keeps the service offline
        sync_engine: Sync engine (built from local and remote when omitted)
        bus: Event bus carrying change and error events
        batch_size: Notes added to the visible window per load_more()
        debounce_seconds: Quiet period before a scheduled search runs
        max_content_length: Upper bound on note content, None for no bound
        push_on_write: Push created/updated notes to the remote in the background
        delete_remote_on_delete: Remove deleted notes from the remote in the background
    """

    def __init__(
        self,
        local: LocalNoteStore,
        *,
        remote: RemoteNoteStore | None = None,
        sync_engine: SyncEngine | None = None,
        bus: NoteEventBus | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        debounce_seconds: float = 0.3,
        max_content_length: int | None = None,
        push_on_write: bool = True,
        delete_remote_on_delete: bool = True,
    ) -> None:
        super().__init__()
        self.local = local
        self.remote = remote
        self.sync_engine = sync_engine
        if self.sync_engine is None and remote is not None:
            self.sync_engine = SyncEngine(local, remote)
        if remote is not None:
            remote.set_error_reporter(self._report_error)

        self.events = bus or NoteEventBus()
        self.session_id = str(uuid4())
        self._max_content_length = max_content_length
        self._push_on_write = push_on_write
        self._delete_remote_on_delete = delete_remote_on_delete

        self._window = PaginationWindow(batch_size)
        self._sort_ascending = False
        self._state = LoadState.IDLE
        self._visible: list[NoteRead] = []
        self._total: int | None = None
        self._debouncer = Debouncer(debounce_seconds)
        self._background = BackgroundTasks("note-service")

    # =========================================================================
    # Observable state
    # =========================================================================

    @property
    def visible_notes(self) -> list[NoteRead]:
        """Notes currently exposed to the presentation layer."""
        return list(self._visible)

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def sort_ascending(self) -> bool:
        """True for oldest first. Defaults to newest first."""
        return self._sort_ascending

    @property
    def batch_size(self) -> int:
        return self._window.batch_size

    @property
    def has_more(self) -> bool:
        """True while stored notes exist beyond the visible window."""
        return self._total is not None and not self._window.covers(self._total)

    def on_error(self, callback: Callable[[str], Any]) -> Callable[[], None]:
        """
        Observe failures as readable messages.

        Returns:
            Callable that removes the observer
        """
        return self.events.subscribe(
            ErrorReported, lambda event: callback(event.payload["message"])
        )

    def on_changed(self, callback: Callable[[], Any]) -> Callable[[], None]:
        """
        Observe changes to the visible note list.

        Returns:
            Callable that removes the observer
        """
        return self.events.subscribe(NotesChanged, lambda event: callback())

    # =========================================================================
    # Internals
    # =========================================================================

    async def _publish(self, event_cls: type[EventEnvelope], **payload: Any) -> None:
        await self.events.publish(
            event_cls(source=EVENT_SOURCE, correlation_id=self.session_id, payload=payload)
        )

    async def _report_error(self, message: str) -> None:
        self._logger.warning(
            "Operation failed",
            extra={"service": self.__class__.__name__, "message": message},
        )
        await self._publish(ErrorReported, message=message)

    async def _fail(self, action: str, error: ApplicationError) -> None:
        message = f"Could not {action}: {error.message}"
        if isinstance(error, ValidationError) and error.details.get("missing_fields"):
            message += f" ({', '.join(error.details['missing_fields'])})"
        await self._report_error(message)

    def _validate_content(self, content: str) -> None:
        self._validate_required({"content": content}, ["content"])
        self._validate_string_length(content, "content", max_length=self._max_content_length)

    async def _reload_visible(self, grow_if_covered: bool = False) -> None:
        """Re-read the visible window. Raises store errors to the caller."""
        covered = self._total is not None and self._window.covers(self._total)
        total = await self.local.count()
        if grow_if_covered and covered:
            self._window.extend_to(total)
        self._window.clamp(total)
        if self._window.size:
            self._visible = await self.local.list(
                self._sort_ascending, limit=self._window.size
            )
        else:
            self._visible = []
        self._total = total

    async def _refresh_visible(self, grow_if_covered: bool = False) -> None:
        try:
            await self._reload_visible(grow_if_covered)
        except ApplicationError as e:
            await self._fail("refresh notes", e)

    def _schedule_push(self, note: NoteRead) -> None:
        if self.remote is not None and self._push_on_write:
            self._background.spawn(self.remote.push(note))

    def _schedule_remote_delete(self, note_id: str) -> None:
        if self.remote is not None and self._delete_remote_on_delete:
            self._background.spawn(self.remote.delete(note_id))

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, content: str) -> NoteRead | None:
        """
        Create a note.

        Returns:
            The created note, or None if it could not be stored
        """
        try:
            self._validate_content(content)
            note = await self.local.create(content)
        except ApplicationError as e:
            await self._fail("create note", e)
            return None

        await self._refresh_visible(grow_if_covered=True)
        self._log_operation("Note created", note_id=note.id)
        await self._publish(NoteCreated, note_id=note.id, title=note.title)
        self._schedule_push(note)
        return note

    async def update(self, note_id: str, content: str) -> NoteRead | None:
        """
        Replace a note's content.

        Returns:
            The updated note, or None on failure
        """
        try:
            self._validate_required({"note_id": note_id}, ["note_id"])
            self._validate_content(content)
            note = await self.local.update(note_id, content)
        except ApplicationError as e:
            await self._fail("update note", e)
            return None

        await self._refresh_visible()
        self._log_operation("Note updated", note_id=note.id)
        await self._publish(NoteUpdated, note_id=note.id, title=note.title)
        self._schedule_push(note)
        return note

    async def delete(self, note_id: str) -> bool:
        """
        Delete a note from both stores. A missing id is a no-op.

        Returns:
            True if a local note was removed
        """
        try:
            deleted = await self.local.delete(note_id)
        except ApplicationError as e:
            await self._fail("delete note", e)
            return False

        if not deleted:
            self._log_debug("Delete of unknown note ignored", note_id=note_id)
            return False

        await self._refresh_visible()
        self._log_operation("Note deleted", note_id=note_id)
        await self._publish(NoteDeleted, note_id=note_id)
        self._schedule_remote_delete(note_id)
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    async def get(self, note_id: str) -> NoteRead | None:
        """Get a note by id, or None when absent or unreadable."""
        try:
            return await self.local.get(note_id)
        except ApplicationError as e:
            await self._fail("load note", e)
            return None

    async def list(self, sort_ascending: bool | None = None, page: int = 0) -> list[NoteRead]:
        """
        Fetch one page of notes without touching the visible window.

        Args:
            sort_ascending: Direction; None uses the current sort order
            page: Zero-based page number, one batch per page
        """
        result = await self.page(sort_ascending, page)
        return result.items if result is not None else []

    async def page(self, sort_ascending: bool | None = None, page: int = 0) -> PagedResult[NoteRead] | None:
        """Like list(), with the total needed for paging controls."""
        ascending = self._sort_ascending if sort_ascending is None else sort_ascending
        try:
            if page < 0:
                raise ValidationError("Page must not be negative", details={"page": page})
            limit, offset = page_bounds(page, self.batch_size)
            total = await self.local.count()
            items = await self.local.list(ascending, limit=limit, offset=offset)
        except ApplicationError as e:
            await self._fail("list notes", e)
            return None
        return PagedResult(items=items, total=total, limit=limit, offset=offset)

    async def count(self) -> int:
        """Total number of stored notes, 0 when unreadable."""
        try:
            return await self.local.count()
        except ApplicationError as e:
            await self._fail("count notes", e)
            return 0

    async def search(self, query: str) -> list[NoteRead]:
        """Search notes in the current sort order. Blank queries match nothing."""
        try:
            return await self.local.search(query, self._sort_ascending)
        except ApplicationError as e:
            await self._fail("search notes", e)
            return []

    def schedule_search(
        self,
        query: str,
        callback: Callable[[list[NoteRead]], Awaitable[Any] | Any],
    ) -> None:
        """
        Run a search after the debounce delay.

        A newer call replaces a pending one; a search that already started
        still delivers its results.
        """
        self._debouncer.call(self._deliver_search, query, callback)

    async def _deliver_search(
        self,
        query: str,
        callback: Callable[[list[NoteRead]], Awaitable[Any] | Any],
    ) -> None:
        results = await self.search(query)
        outcome = callback(results)
        if inspect.isawaitable(outcome):
            await outcome

    # =========================================================================
    # List state
    # =========================================================================

    async def load_more(self) -> bool:
        """
        Grow the visible window by one batch.

        A call made while a previous one is still loading is ignored.

        Returns:
            True if more notes became visible
        """
        if self._state is LoadState.LOADING_MORE:
            self._log_debug("Load more ignored while loading")
            return False

        self._state = LoadState.LOADING_MORE
        previous = self._window.size
        try:
            total = await self.local.count()
            if not self._window.advance(total):
                self._total = total
                return False
            self._visible = await self.local.list(
                self._sort_ascending, limit=self._window.size
            )
            self._total = total
        except ApplicationError as e:
            self._window.clamp(previous)
            await self._fail("load more notes", e)
            return False
        finally:
            self._state = LoadState.IDLE

        self._log_debug("Page loaded", size=self._window.size, total=total)
        await self._publish(PageLoaded, size=self._window.size, total=total)
        return True

    async def set_sort_order(self, ascending: bool) -> None:
        """Change the sort direction, re-reading the visible window."""
        if ascending == self._sort_ascending:
            return
        self._sort_ascending = ascending
        try:
            await self._reload_visible()
        except ApplicationError as e:
            self._sort_ascending = not ascending
            await self._fail("change sort order", e)
            return
        await self._publish(SortOrderChanged, ascending=ascending)

    async def toggle_sort_order(self) -> None:
        """Flip between oldest first and newest first."""
        await self.set_sort_order(not self._sort_ascending)

    async def refresh(self) -> list[NoteRead]:
        """Re-read the visible window from the local store."""
        await self._refresh_visible()
        return self.visible_notes

    # =========================================================================
    # Sync and lifecycle
    # =========================================================================

    async def sync(self) -> SyncReport | None:
        """
        Run one sync cycle with the remote store.

        Returns:
            The cycle report, or None when remote sync is not configured
        """
        if self.sync_engine is None:
            await self._report_error("Remote sync is not configured")
            return None

        report = await self.sync_engine.sync()
        if not report.ok:
            await self._report_error(f"Sync failed: {report.error}")
        if not report.merged:
            return report

        await self._refresh_visible(grow_if_covered=True)
        await self._publish(NotesMerged, note_ids=report.merged_ids)
        return report

    async def aclose(self) -> None:
        """Cancel the pending search and wait for background remote writes."""
        self._debouncer.cancel()
        await self._debouncer.flush()
        await self._background.drain()

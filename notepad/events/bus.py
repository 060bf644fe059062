"""
Note Event Bus.

In-process publish/subscribe channel between the note service and the
presentation layer. Any number of observers may subscribe to an event
type; a subscription to a base type (e.g. NotesChanged) receives every
subclass event.

Handlers may be plain callables or coroutine functions. A failing handler
is logged and does not prevent delivery to the remaining handlers.

Usage:
    from notepad.events.bus import NoteEventBus
    from notepad.events.schemas import NotesChanged

    bus = NoteEventBus()
    unsubscribe = bus.subscribe(NotesChanged, lambda event: redraw())
    await bus.publish(NoteCreated(source="note-service", correlation_id=sid))
    unsubscribe()
"""

import inspect
from collections.abc import Callable
from typing import Any

from notepad.core.logging import get_logger
from notepad.events.schemas import EventEnvelope

logger = get_logger(__name__)

Handler = Callable[[Any], Any]


class NoteEventBus:
    """Delivers note domain events to subscribed observers."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[type[EventEnvelope], Handler]] = []

    def subscribe(
        self,
        event_type: type[EventEnvelope],
        handler: Handler,
    ) -> Callable[[], None]:
        """
        Register a handler for an event type and its subclasses.

        Args:
            event_type: Event class to listen for
            handler: Callable receiving the event (sync or async)

        Returns:
            Callable that removes this subscription
        """
        entry = (event_type, handler)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def subscriber_count(self, event_type: type[EventEnvelope] | None = None) -> int:
        """Number of subscriptions, optionally only those for one type."""
        if event_type is None:
            return len(self._subscribers)
        return sum(1 for registered, _ in self._subscribers if registered is event_type)

    async def publish(self, event: EventEnvelope) -> int:
        """
        Deliver an event to every matching subscriber, in subscription order.

        Returns:
            Number of handlers that completed without error
        """
        delivered = 0
        for event_type, handler in list(self._subscribers):
            if not isinstance(event, event_type):
                continue
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception(
                    "Event handler failed",
                    extra={
                        "event_type": event.event_type,
                        "event_id": event.event_id,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                        "error": str(e),
                    },
                )
                continue
            delivered += 1

        logger.debug(
            "Event published",
            extra={
                "event_type": event.event_type,
                "event_id": event.event_id,
                "delivered": delivered,
            },
        )
        return delivered

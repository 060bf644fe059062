"""
Concurrency Infrastructure.

Asyncio helpers shared by the stores and the note service:

    BackgroundTasks - tracks fire-and-forget tasks so shutdown can drain them
    Debouncer       - runs only the last call made within a quiet period

Usage:
    from notepad.core.concurrency import BackgroundTasks, Debouncer

    tasks = BackgroundTasks("remote-push")
    tasks.spawn(remote.push(note))
    await tasks.drain()

    debouncer = Debouncer(0.3)
    debouncer.call(run_search, "groceries")
"""

import asyncio
import contextvars
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from notepad.core.logging import get_logger

logger = get_logger(__name__)


class BackgroundTasks:
    """Holds references to fire-and-forget tasks until they finish.

    asyncio only keeps weak references to tasks, so an untracked task can be
    garbage collected mid-flight. Failures are logged, never re-raised into
    the code that spawned the task.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Schedule a coroutine and keep it alive until it completes."""
        task = asyncio.create_task(coro, context=contextvars.copy_context())
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Background task failed",
                extra={"group": self.name, "error": str(error)},
            )

    async def drain(self) -> None:
        """Wait for every tracked task, including ones spawned while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.debug("Background tasks drained", extra={"group": self.name})


class Debouncer:
    """Delays a call until no newer call arrives for ``delay`` seconds.

    Each call() invalidates the pending timer. Work that already started
    is left to finish; only timers are cancelled, never a running call.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._timer: asyncio.Task | None = None
        self._tasks = BackgroundTasks("debounce")

    @property
    def pending(self) -> bool:
        """True while a timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    def call(self, fn: Callable[..., Awaitable[Any]], *args: Any) -> None:
        """Schedule ``fn(*args)`` after the quiet period, replacing any pending call."""
        if self.pending:
            self._timer.cancel()
        self._timer = asyncio.create_task(self._fire(fn, args))

    async def _fire(self, fn: Callable[..., Awaitable[Any]], args: tuple) -> None:
        await asyncio.sleep(self.delay)
        # Detach the work from the timer so a later call() cannot cancel it
        self._tasks.spawn(fn(*args))

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        if self.pending:
            self._timer.cancel()
        self._timer = None

    async def flush(self) -> None:
        """Wait for the pending timer and any call it started."""
        if self._timer is not None:
            try:
                await self._timer
            except asyncio.CancelledError:
                if not self._timer.cancelled():
                    raise
        await self._tasks.drain()


def create_semaphore(name: str, capacity: int) -> asyncio.Semaphore:
    """Create a named semaphore for concurrency-limiting remote calls."""
    logger.debug("Semaphore created", extra={"name": name, "capacity": capacity})
    return asyncio.Semaphore(capacity)

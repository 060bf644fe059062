"""
Pagination Utilities.

Window-based pagination for the visible note list. The presentation layer
shows the first N notes and grows N by one batch on each "load more".

Usage:
    window = PaginationWindow(batch_size=20)
    window.advance(total=45)   # True, size 20
    window.advance(total=45)   # True, size 40
    window.advance(total=45)   # True, size 45
    window.advance(total=45)   # False, nothing left to load
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 20


class LoadState(str, Enum):
    """Load state of the visible note list."""

    IDLE = "idle"
    LOADING_MORE = "loading_more"


class PaginationWindow:
    """
    The number of notes currently exposed to the presentation layer.

    The window starts empty and only grows through advance(). It never
    exceeds the total it was last advanced or clamped against.
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self._size = 0

    @property
    def size(self) -> int:
        """Current window size."""
        return self._size

    def covers(self, total: int) -> bool:
        """Check if the window already exposes all ``total`` notes."""
        return self._size >= total

    def advance(self, total: int) -> bool:
        """
        Grow the window by one batch, clamped to ``total``.

        Args:
            total: Number of notes currently stored

        Returns:
            True if the window grew, False when it already covered everything
        """
        if self.covers(total):
            return False
        self._size = min(self._size + self.batch_size, total)
        return True

    def clamp(self, total: int) -> None:
        """Shrink the window when notes disappeared from under it."""
        self._size = min(self._size, max(total, 0))

    def extend_to(self, total: int) -> None:
        """Grow the window to ``total`` without batching (new note appended)."""
        self._size = max(self._size, total)

    def reset(self) -> None:
        """Empty the window."""
        self._size = 0

    def __repr__(self) -> str:
        return f"<PaginationWindow(size={self._size}, batch_size={self.batch_size})>"


@dataclass
class PagedResult(Generic[T]):
    """
    Result container for one page of notes.

    Contains the items and the metadata needed to render paging controls.
    """

    items: list[T]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        """Check if notes exist past this page."""
        return (self.offset + len(self.items)) < self.total


def page_bounds(page: int, batch_size: int) -> tuple[int, int]:
    """
    Translate a zero-based page number into (limit, offset).

    Raises:
        ValueError: If page is negative
    """
    if page < 0:
        raise ValueError("page must not be negative")
    return batch_size, page * batch_size

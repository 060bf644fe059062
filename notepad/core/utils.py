"""
Core Utilities.

Shared utility functions used across the package.
"""

import unicodedata
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetime values in the application are timezone-naive and assumed
    to be UTC, both in the local database and on the remote wire.

    Returns:
        Current UTC time with tzinfo stripped
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def fold_text(value: str | None) -> str | None:
    """
    Fold text for case- and accent-insensitive matching.

    Decomposes to NFKD, drops combining marks, then casefolds, so
    "Tiếng VIỆT" and "tieng viet" fold to the same string.
    """
    if value is None:
        return None
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()

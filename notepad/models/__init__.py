"""
Database Models.

Importing this package registers every table on Base.metadata.
"""

from notepad.models.base import Base
from notepad.models.note import Note

__all__ = ["Base", "Note"]

"""
Note Model.

The single persisted entity and the rule that derives its title.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from notepad.models.base import Base, TimestampMixin, UUIDMixin

DEFAULT_THEME = "Default"
UNTITLED = "Untitled"


def derive_title(content: str) -> str:
    """
    Derive a note title from its content.

    The title is the text before the first ``.``. Content without a ``.``,
    or with nothing before it, is ``"Untitled"``.

    Args:
        content: Note content

    Returns:
        Derived title
    """
    head, dot, _ = content.partition(".")
    if not dot or not head:
        return UNTITLED
    return head


class Note(UUIDMixin, TimestampMixin, Base):
    """
    Note database model.

    Title is never set on its own; it is always written together with
    content via derive_title().
    """

    __tablename__ = "notes"

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )
    background_theme: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default=DEFAULT_THEME,
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title={self.title!r})>"

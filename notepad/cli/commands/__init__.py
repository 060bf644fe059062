"""
CLI Commands.

Organized by feature area.
"""

from notepad.cli.commands import notes, system

__all__ = [
    "notes",
    "system",
]

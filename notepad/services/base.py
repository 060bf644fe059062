"""
Base Service.

Shared plumbing for services: a module logger tagged with the service
name and the input checks services run before touching a store.

Usage:
    class ArchiveService(BaseService):
        async def archive(self, content: str) -> NoteRead:
            self._validate_required({"content": content}, ["content"])
            return await self.local.create(content)
"""

from typing import Any

from notepad.core.exceptions import ValidationError
from notepad.core.logging import get_logger


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class BaseService:
    """Parent of NoteService and SyncEngine."""

    def __init__(self) -> None:
        self._logger = get_logger(type(self).__module__)

    def _validate_required(self, fields: dict[str, Any], field_names: list[str]) -> None:
        """
        Reject missing, None or whitespace-only values.

        Raises:
            ValidationError: Listing every offending name in
                details["missing_fields"]
        """
        missing = [name for name in field_names if _is_blank(fields.get(name))]
        if missing:
            raise ValidationError("Required fields missing", details={"missing_fields": missing})

    def _validate_string_length(
        self,
        value: str,
        field_name: str,
        min_length: int | None = None,
        max_length: int | None = None,
    ) -> None:
        """Raises ValidationError when ``value`` is outside the given bounds."""
        if min_length is not None and len(value) < min_length:
            raise ValidationError(
                f"{field_name} too short",
                details={field_name: f"Minimum length is {min_length}"},
            )
        if max_length is not None and len(value) > max_length:
            raise ValidationError(
                f"{field_name} too long",
                details={field_name: f"Maximum length is {max_length}"},
            )

    def _log_operation(self, operation: str, **context: Any) -> None:
        self._logger.info(operation, extra={"service": type(self).__name__, **context})

    def _log_debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, extra={"service": type(self).__name__, **context})

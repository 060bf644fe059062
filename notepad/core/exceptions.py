"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
Every fault raised by the stores is one of these; the note service turns
them into messages on its error channel.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when an operation references a note id that does not exist."""

    def __init__(self, message: str = "Note not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class AuthenticationError(ApplicationError):
    """Raised when the auth collaborator cannot resolve the current user."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED")


class StorageError(ApplicationError):
    """Raised when a local read or write fails (disk, constraint violation)."""

    def __init__(self, message: str = "Local storage error") -> None:
        super().__init__(message, code="SYS_STORAGE_ERROR")


class EntityCreationError(StorageError):
    """Raised when the notes schema is missing or cannot be created."""

    def __init__(self, message: str = "Note entity is not available") -> None:
        super().__init__(message)
        self.code = "SYS_ENTITY_MISSING"


class RemoteUnavailableError(ApplicationError):
    """Raised when the remote document store cannot be reached."""

    def __init__(self, message: str = "Remote store unavailable") -> None:
        super().__init__(message, code="SYS_REMOTE_UNAVAILABLE")

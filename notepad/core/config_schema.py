"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. If a YAML file
has missing keys, wrong types, or unknown fields, a clear ValidationError
is raised at startup instead of a cryptic KeyError deep in application code.

Each top-level class corresponds to one file in config/settings/:
    ApplicationSchema  → application.yaml
    DatabaseSchema     → database.yaml
    LoggingSchema      → logging.yaml
    FeaturesSchema     → features.yaml
    RemoteSchema       → remote.yaml
"""

from pydantic import BaseModel, ConfigDict, Field


class _StrictBase(BaseModel):
    """Base with extra='forbid' so unknown YAML keys are caught immediately."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# application.yaml
# =============================================================================


class PaginationSchema(_StrictBase):
    batch_size: int = Field(gt=0)


class SearchSchema(_StrictBase):
    debounce_seconds: float = Field(ge=0)


class NotesSchema(_StrictBase):
    default_theme: str
    max_content_length: int = Field(gt=0)


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    pagination: PaginationSchema
    search: SearchSchema
    notes: NotesSchema


# =============================================================================
# database.yaml
# =============================================================================


class DatabaseSchema(_StrictBase):
    url: str
    echo: bool


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: str
    handlers: HandlersSchema


# =============================================================================
# features.yaml
# =============================================================================


class FeaturesSchema(_StrictBase):
    remote_sync_enabled: bool
    sync_on_start: bool
    push_on_write: bool
    delete_remote_on_delete: bool


# =============================================================================
# remote.yaml
# =============================================================================


class RemoteCircuitBreakerSchema(_StrictBase):
    fail_max: int
    timeout_duration: int


class RemoteRetrySchema(_StrictBase):
    max_attempts: int = Field(ge=1)
    backoff_multiplier: float
    backoff_max: float


class RemoteSchema(_StrictBase):
    base_url: str
    collection: str
    timeout_seconds: float
    max_concurrent_requests: int = Field(gt=0)
    circuit_breaker: RemoteCircuitBreakerSchema
    retry: RemoteRetrySchema

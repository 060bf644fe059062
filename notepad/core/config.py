"""
Configuration.

Two sources, both located from the project root (the directory holding
the ``.project_root`` marker):

    config/.env                secrets: REMOTE_API_TOKEN, REMOTE_USER_ID (optional)
    config/settings/<name>.yaml  one file per AppConfig section, validated
                               by the matching schema in config_schema

Only notepad.core.dependencies, logging setup and the CLI read config;
everything else takes plain constructor arguments.

Usage:
    from notepad.core.config import get_app_config

    batch = get_app_config().application.pagination.batch_size
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from notepad.core.config_schema import (
    ApplicationSchema,
    DatabaseSchema,
    FeaturesSchema,
    LoggingSchema,
    RemoteSchema,
)

MARKER_FILE = ".project_root"
SQLITE_PREFIX = "sqlite+aiosqlite:///"

# Section name -> schema; each section lives in config/settings/<name>.yaml
SECTION_SCHEMAS: dict[str, type[BaseModel]] = {
    "application": ApplicationSchema,
    "database": DatabaseSchema,
    "logging": LoggingSchema,
    "features": FeaturesSchema,
    "remote": RemoteSchema,
}


def find_project_root() -> Path:
    """Walk up from the working directory to the marker file."""
    for directory in (Path.cwd(), *Path.cwd().parents):
        if (directory / MARKER_FILE).exists():
            return directory
    raise RuntimeError(f"Project root not found. Ensure {MARKER_FILE} file exists.")


def validate_project_root() -> Path:
    """Like find_project_root(), but exits with a readable message for entry scripts."""
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Read one file from config/settings/. An empty file reads as {}."""
    path = find_project_root() / "config" / "settings" / filename
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """Secrets for the remote document store. Both may be empty."""

    remote_api_token: str = ""
    remote_user_id: str = ""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _load_section(name: str) -> BaseModel:
    filename = f"{name}.yaml"
    try:
        return SECTION_SCHEMAS[name](**load_yaml_config(filename))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {filename}:\n{e}") from e


class AppConfig:
    """
    Every settings file, validated at construction.

    Raises:
        FileNotFoundError: If a settings file is missing
        ValueError: If a settings file does not match its schema
    """

    application: ApplicationSchema
    database: DatabaseSchema
    logging: LoggingSchema
    features: FeaturesSchema
    remote: RemoteSchema

    def __init__(self) -> None:
        for name in SECTION_SCHEMAS:
            setattr(self, name, _load_section(name))


@lru_cache
def get_settings() -> Settings:
    """Secrets from the environment, overlaid by config/.env when present."""
    env_file = find_project_root() / "config" / ".env"
    return Settings(_env_file=str(env_file)) if env_file.is_file() else Settings()


@lru_cache
def get_app_config() -> AppConfig:
    return AppConfig()


def get_database_url() -> str:
    """
    SQLAlchemy URL of the local store.

    A relative SQLite path in database.yaml is anchored at the project
    root, so every working directory below it opens the same file.
    """
    url = get_app_config().database.url
    if not url.startswith(SQLITE_PREFIX):
        return url
    path = url[len(SQLITE_PREFIX):]
    if not path or path == ":memory:" or Path(path).is_absolute():
        return url
    return f"{SQLITE_PREFIX}{find_project_root() / path}"

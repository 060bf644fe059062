"""
Dependency Wiring.

Builds the object graph from configuration. This is the only module that
reads config for the core classes; everything below it takes plain
constructor arguments.

Usage:
    from notepad.core.dependencies import open_runtime

    async with open_runtime() as runtime:
        await runtime.service.create("Groceries.\\nMilk, eggs")
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from notepad.core.config import AppConfig, Settings, get_app_config, get_database_url, get_settings
from notepad.core.database import Database
from notepad.core.logging import get_logger
from notepad.core.resilience import create_circuit_breaker
from notepad.core.security import AnonymousAuth, AuthProvider, StaticUserAuth
from notepad.events.bus import NoteEventBus
from notepad.services.note import NoteService
from notepad.services.sync import SyncEngine
from notepad.stores.local import LocalNoteStore
from notepad.stores.remote import RemoteNoteStore

logger = get_logger(__name__)


@dataclass
class NoteRuntime:
    """Everything one process needs to work with notes."""

    database: Database
    local: LocalNoteStore
    remote: RemoteNoteStore | None
    sync_engine: SyncEngine | None
    bus: NoteEventBus
    service: NoteService


def build_auth(settings: Settings) -> AuthProvider:
    """Auth collaborator for the configured user, anonymous when none is set."""
    if settings.remote_user_id:
        return StaticUserAuth(settings.remote_user_id)
    return AnonymousAuth()


def build_remote_store(config: AppConfig, settings: Settings) -> RemoteNoteStore:
    """Create the remote store from remote.yaml and the .env secrets."""
    remote = config.remote
    return RemoteNoteStore(
        remote.base_url,
        remote.collection,
        auth=build_auth(settings),
        token=settings.remote_api_token,
        timeout=remote.timeout_seconds,
        max_concurrent_requests=remote.max_concurrent_requests,
        breaker=create_circuit_breaker(
            "remote-notes",
            fail_max=remote.circuit_breaker.fail_max,
            timeout_duration=remote.circuit_breaker.timeout_duration,
        ),
        retry_attempts=remote.retry.max_attempts,
        backoff_multiplier=remote.retry.backoff_multiplier,
        backoff_max=remote.retry.backoff_max,
    )


@asynccontextmanager
async def open_runtime(
    database_url: str | None = None,
    remote_enabled: bool | None = None,
) -> AsyncIterator[NoteRuntime]:
    """
    Open the database, build the stores and the note service.

    Args:
        database_url: Override for database.yaml
        remote_enabled: Override for features.remote_sync_enabled

    Raises:
        EntityCreationError: If the note schema cannot be created
    """
    config = get_app_config()
    features = config.features
    if remote_enabled is None:
        remote_enabled = features.remote_sync_enabled

    database = Database(database_url or get_database_url(), echo=config.database.echo)
    remote: RemoteNoteStore | None = None
    service: NoteService | None = None
    try:
        await database.initialize()
        local = LocalNoteStore(database, default_theme=config.application.notes.default_theme)

        sync_engine = None
        if remote_enabled:
            remote = build_remote_store(config, get_settings())
            sync_engine = SyncEngine(local, remote)

        bus = NoteEventBus()
        service = NoteService(
            local,
            remote=remote,
            sync_engine=sync_engine,
            bus=bus,
            batch_size=config.application.pagination.batch_size,
            debounce_seconds=config.application.search.debounce_seconds,
            max_content_length=config.application.notes.max_content_length,
            push_on_write=features.push_on_write,
            delete_remote_on_delete=features.delete_remote_on_delete,
        )
        logger.debug(
            "Runtime ready",
            extra={"remote_enabled": remote_enabled, "database": database.url},
        )

        runtime = NoteRuntime(database, local, remote, sync_engine, bus, service)
        if sync_engine is not None and features.sync_on_start:
            await service.sync()
        yield runtime
    finally:
        if service is not None:
            await service.aclose()
        if remote is not None:
            await remote.aclose()
        await database.dispose()

"""
Root Pytest Fixtures.

Shared fixtures available to all test types.

Test Database Configuration:
    Store tests use an in-memory SQLite database (aiosqlite, StaticPool),
    created fresh for each test function.

Remote Document Store:
    Remote tests talk to FakeDocumentServer through httpx.MockTransport,
    so no network is involved.
"""

import json
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import httpx
import pytest

from notepad.core.config import get_app_config, get_settings
from notepad.core.database import Database
from notepad.core.resilience import create_circuit_breaker
from notepad.core.security import StaticUserAuth
from notepad.stores.local import LocalNoteStore
from notepad.stores.remote import RemoteNoteStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
REMOTE_BASE_URL = "http://remote.test"
TEST_USER = "user-1"


# =============================================================================
# Config Cache
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_config_cache():
    """Clear lru_cache between tests so each test gets a fresh load."""
    get_settings.cache_clear()
    get_app_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_app_config.cache_clear()


# =============================================================================
# Clock
# =============================================================================


class StepClock:
    """Deterministic clock: every call returns a time one step later."""

    def __init__(
        self,
        start: datetime = datetime(2025, 1, 1, 9, 0, 0),
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


# =============================================================================
# Local Store
# =============================================================================


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Fresh in-memory database with the notes schema created."""
    db = Database(TEST_DATABASE_URL)
    await db.initialize()
    yield db
    await db.dispose()


@pytest.fixture
def local_store(database: Database, clock: StepClock) -> LocalNoteStore:
    return LocalNoteStore(database, clock=clock)


# =============================================================================
# Remote Document Store
# =============================================================================


class FakeDocumentServer:
    """
    In-memory document store speaking the remote notes protocol.

    Documents are kept per (user, collection). Failure switches:
        offline        - every request raises a transport error
        unavailable    - every request answers 503
        reject_ids     - PUT for these note ids answers 500
        wrap_documents - GET answers {"documents": [...]} instead of a list
    """

    def __init__(self) -> None:
        self.documents: dict[tuple[str, str], dict[str, dict]] = {}
        self.requests: list[tuple[str, str]] = []
        self.offline = False
        self.unavailable = False
        self.reject_ids: set[str] = set()
        self.wrap_documents = False

    def collection(self, user: str = TEST_USER, name: str = "notes") -> dict[str, dict]:
        return self.documents.setdefault((user, name), {})

    def seed(self, document: dict, user: str = TEST_USER) -> None:
        self.collection(user)[document["uuid"]] = document

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        if self.unavailable:
            return httpx.Response(503)

        parts = request.url.path.strip("/").split("/")
        if len(parts) not in (3, 4) or parts[0] != "users":
            return httpx.Response(404)
        documents = self.collection(parts[1], parts[2])

        if len(parts) == 3:
            if request.method != "GET":
                return httpx.Response(405)
            listing = list(documents.values())
            return httpx.Response(
                200, json={"documents": listing} if self.wrap_documents else listing
            )

        note_id = parts[3]
        if request.method == "PUT":
            if note_id in self.reject_ids:
                return httpx.Response(500)
            documents[note_id] = json.loads(request.content)
            return httpx.Response(200, json=documents[note_id])
        if request.method == "DELETE":
            if documents.pop(note_id, None) is None:
                return httpx.Response(404)
            return httpx.Response(204)
        return httpx.Response(405)


def remote_document(
    uuid: str,
    content: str,
    created: str = "2025-01-01T08:00:00",
    edited: str | None = None,
    **extra: str,
) -> dict:
    """Build a remote wire document."""
    document = {
        "uuid": uuid,
        "title": content.partition(".")[0],
        "content": content,
        "createdTime": created,
        "lastEditTime": edited or created,
        "backgroundTheme": "Default",
    }
    document.update(extra)
    return document


@pytest.fixture
def document_server() -> FakeDocumentServer:
    return FakeDocumentServer()


@pytest.fixture
async def remote_store(
    document_server: FakeDocumentServer,
) -> AsyncGenerator[RemoteNoteStore, None]:
    """Remote store wired to the fake server, with a breaker that never trips."""
    store = RemoteNoteStore(
        REMOTE_BASE_URL,
        auth=StaticUserAuth(TEST_USER),
        breaker=create_circuit_breaker("test-remote", fail_max=1000),
        transport=httpx.MockTransport(document_server.handle),
    )
    yield store
    await store.aclose()


@pytest.fixture
def make_document():
    """Factory for remote wire documents."""
    return remote_document

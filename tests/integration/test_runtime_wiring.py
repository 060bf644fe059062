"""
Integration Tests for Runtime Wiring.

open_runtime builds the object graph from the shipped configuration.
"""

import httpx
import pytest

from notepad.core.config import Settings, get_app_config
from notepad.core.dependencies import build_auth, build_remote_store, open_runtime
from notepad.core.security import AnonymousAuth, StaticUserAuth
from notepad.stores.remote import RemoteNoteStore

MEMORY_URL = "sqlite+aiosqlite:///:memory:"
REMOTE_ID = "7c1d4e2a-9b3f-4a6e-8d5c-2f0b1a9e3c47"


@pytest.fixture
def fake_remote(monkeypatch, document_server):
    def build(config, settings):
        return RemoteNoteStore(
            "http://remote.test",
            auth=StaticUserAuth("user-1"),
            transport=httpx.MockTransport(document_server.handle),
        )

    monkeypatch.setattr("notepad.core.dependencies.build_remote_store", build)
    return document_server


class TestBuilders:
    def test_auth_from_settings(self):
        assert isinstance(build_auth(Settings(remote_user_id="u1")), StaticUserAuth)
        assert isinstance(build_auth(Settings(remote_user_id="")), AnonymousAuth)

    async def test_remote_store_from_config(self):
        remote = build_remote_store(get_app_config(), Settings(remote_user_id="u1"))
        try:
            assert remote.base_url == get_app_config().remote.base_url
        finally:
            await remote.aclose()


class TestOpenRuntime:
    async def test_local_only_by_default(self):
        async with open_runtime(MEMORY_URL) as runtime:
            assert runtime.remote is None
            assert runtime.sync_engine is None
            assert runtime.service.batch_size == get_app_config().application.pagination.batch_size
            note = await runtime.service.create("Wired.")
            assert await runtime.local.get(note.id) == note

    async def test_remote_enabled(self, fake_remote):
        async with open_runtime(MEMORY_URL, remote_enabled=True) as runtime:
            assert runtime.remote is not None
            assert runtime.service.sync_engine is runtime.sync_engine
            note = await runtime.service.create("Pushed.")

        assert note.id in fake_remote.collection()

    async def test_sync_on_start(self, monkeypatch, fake_remote, make_document):
        monkeypatch.setattr(get_app_config().features, "sync_on_start", True)
        fake_remote.seed(make_document(REMOTE_ID, "Remote. note"))

        async with open_runtime(MEMORY_URL, remote_enabled=True) as runtime:
            assert await runtime.local.get(REMOTE_ID) is not None

    async def test_file_database_is_created(self, tmp_path):
        path = tmp_path / "data" / "notes.db"
        async with open_runtime(f"sqlite+aiosqlite:///{path}"):
            pass
        assert path.exists()

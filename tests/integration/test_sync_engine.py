"""
Integration Tests for the Sync Engine.

Real in-memory local store, remote store over FakeDocumentServer.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from notepad.core.exceptions import StorageError
from notepad.schemas.note import RemoteNoteDocument
from notepad.services.sync import SyncEngine, SyncStage, SyncStatus, merge_notes

REMOTE_ID = "7c1d4e2a-9b3f-4a6e-8d5c-2f0b1a9e3c47"


@pytest.fixture
def engine(local_store, remote_store) -> SyncEngine:
    return SyncEngine(local_store, remote_store)


class TestMergeNotes:
    async def test_only_unknown_remote_notes_are_incoming(self, local_store, make_document):
        local = await local_store.create("Shared. local copy")
        same = RemoteNoteDocument.model_validate(
            make_document(local.id, "Shared. local copy")
        ).to_note()
        fresh = RemoteNoteDocument.model_validate(make_document(REMOTE_ID, "Fresh.")).to_note()

        incoming, conflicts = merge_notes([local], [same, fresh])

        assert [note.id for note in incoming] == [REMOTE_ID]
        assert conflicts == []

    async def test_divergent_content_is_a_conflict(self, local_store, make_document):
        local = await local_store.create("Mine.")
        theirs = RemoteNoteDocument.model_validate(
            make_document(local.id, "Theirs.")
        ).to_note()

        incoming, conflicts = merge_notes([local], [theirs])

        assert incoming == []
        assert conflicts == [local.id]


class TestSyncCycle:
    async def test_both_sides_end_with_the_union(
        self, engine, local_store, document_server, make_document
    ):
        note_a = await local_store.create("foo")
        document_server.seed(make_document(REMOTE_ID, "bar"))

        report = await engine.sync()

        assert report.status is SyncStatus.COMPLETED
        assert report.pulled == 1
        assert report.merged_ids == [REMOTE_ID]
        assert report.pushed == 2
        assert {note.id for note in await local_store.all_notes()} == {note_a.id, REMOTE_ID}
        assert set(document_server.collection()) == {note_a.id, REMOTE_ID}

    async def test_documents_without_uuid_ids_are_not_merged(
        self, engine, local_store, document_server, make_document
    ):
        document_server.seed(make_document("not-a-uuid", "Stray. note"))
        document_server.seed(make_document(REMOTE_ID, "Kept. note"))

        report = await engine.sync()

        assert report.merged_ids == [REMOTE_ID]
        assert [note.id for note in await local_store.all_notes()] == [REMOTE_ID]

    async def test_merged_note_keeps_remote_fields(
        self, engine, local_store, document_server, make_document
    ):
        document = make_document(
            REMOTE_ID, "Remote. body", created="2024-03-01T10:00:00",
            edited="2024-03-02T11:30:00", backgroundTheme="Forest",
        )
        document_server.seed(document)

        await engine.sync()

        stored = await local_store.get(REMOTE_ID)
        assert stored == RemoteNoteDocument.model_validate(document).to_note()
        assert stored.background_theme == "Forest"
        assert stored.title == "Remote"

    async def test_local_note_is_pushed_unchanged(self, engine, local_store, document_server):
        note = await local_store.create("Local. only")

        await engine.sync()

        pushed = RemoteNoteDocument.model_validate(document_server.collection()[note.id])
        assert pushed.to_note() == note

    async def test_conflict_keeps_local_content(
        self, engine, local_store, document_server, make_document
    ):
        note = await local_store.create("Local. wins")
        document_server.seed(make_document(note.id, "Remote. loses"))

        report = await engine.sync()

        assert report.conflict_ids == [note.id]
        assert report.merged_ids == []
        assert (await local_store.get(note.id)).content == "Local. wins"
        assert document_server.collection()[note.id]["content"] == "Local. wins"

    async def test_second_cycle_merges_nothing(
        self, engine, local_store, document_server, make_document
    ):
        await local_store.create("foo")
        document_server.seed(make_document(REMOTE_ID, "bar"))

        await engine.sync()
        report = await engine.sync()

        assert report.merged == 0
        assert await local_store.count() == 2

    async def test_empty_on_both_sides(self, engine):
        report = await engine.sync()
        assert report.status is SyncStatus.COMPLETED
        assert report.pulled == report.merged == report.pushed == 0


class TestSyncFailures:
    async def test_unreachable_remote_aborts_before_local_writes(
        self, engine, local_store, document_server
    ):
        await local_store.create("Unsynced.")
        document_server.offline = True

        report = await engine.sync()

        assert report.status is SyncStatus.FAILED
        assert report.failed_stage is SyncStage.PULL
        assert not report.ok
        assert report.error
        assert await local_store.count() == 1
        assert [method for method, _ in document_server.requests] == ["GET"]

    async def test_unavailable_remote_aborts(self, engine, document_server):
        document_server.unavailable = True
        report = await engine.sync()
        assert report.failed_stage is SyncStage.PULL
        assert "HTTP 503" in report.error

    async def test_local_read_failure_aborts(self, engine, local_store, document_server, make_document):
        document_server.seed(make_document(REMOTE_ID, "bar"))
        local_store.all_notes = AsyncMock(side_effect=StorageError("disk gone"))

        report = await engine.sync()

        assert report.failed_stage is SyncStage.LOCAL_READ
        assert report.error == "disk gone"
        assert await local_store.count() == 0

    async def test_merge_failure_aborts_before_push(
        self, engine, local_store, document_server, make_document
    ):
        await local_store.create("foo")
        document_server.seed(make_document(REMOTE_ID, "bar"))
        local_store.insert_many = AsyncMock(side_effect=StorageError("write failed"))

        report = await engine.sync()

        assert report.failed_stage is SyncStage.MERGE
        assert [method for method, _ in document_server.requests] == ["GET"]

    async def test_push_failures_make_the_cycle_partial(
        self, engine, local_store, remote_store, document_server
    ):
        messages = []
        remote_store.set_error_reporter(messages.append)
        kept = await local_store.create("Kept.")
        rejected = await local_store.create("Rejected.")
        document_server.reject_ids = {rejected.id}

        report = await engine.sync()

        assert report.status is SyncStatus.PARTIAL
        assert report.ok
        assert report.pushed == 1
        assert report.push_failed_ids == [rejected.id]
        assert set(document_server.collection()) == {kept.id}
        assert len(messages) == 1


class TestSyncConcurrency:
    async def test_cycles_run_one_at_a_time(
        self, engine, local_store, document_server, make_document
    ):
        await local_store.create("foo")
        document_server.seed(make_document(REMOTE_ID, "bar"))

        first, second = await asyncio.gather(engine.sync(), engine.sync())

        assert sorted([first.merged, second.merged]) == [0, 1]
        assert await local_store.count() == 2
        assert not engine.running

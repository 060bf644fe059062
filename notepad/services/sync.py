"""
Sync Engine.

Reconciles the local store with the remote document store. One cycle is
strictly ordered:

    1. pull every remote note
    2. read every local note
    3. keep remote notes whose id is unknown locally (union merge)
    4. persist those notes locally
    5. push every local note, including the ones just merged

A note present on both sides is never overwritten locally; when the two
copies disagree the id is recorded as a conflict and the local copy wins.

Usage:
    engine = SyncEngine(local_store, remote_store)
    report = await engine.sync()
    if report.merged:
        refresh_list()
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum

from notepad.core.exceptions import ApplicationError, RemoteUnavailableError, StorageError
from notepad.core.logging import get_logger, log_with_source
from notepad.schemas.note import NoteRead
from notepad.services.base import BaseService
from notepad.stores.local import LocalNoteStore
from notepad.stores.remote import RemoteNoteStore

logger = get_logger(__name__)


class SyncStatus(str, Enum):
    """Outcome of one sync cycle."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncStage(str, Enum):
    """Step of the cycle that aborted it."""

    PULL = "pull"
    LOCAL_READ = "local_read"
    MERGE = "merge"


@dataclass
class SyncReport:
    """What one sync cycle did."""

    status: SyncStatus = SyncStatus.COMPLETED
    pulled: int = 0
    merged_ids: list[str] = field(default_factory=list)
    pushed: int = 0
    push_failed_ids: list[str] = field(default_factory=list)
    conflict_ids: list[str] = field(default_factory=list)
    failed_stage: SyncStage | None = None
    error: str | None = None

    @property
    def merged(self) -> int:
        return len(self.merged_ids)

    @property
    def push_failed(self) -> int:
        return len(self.push_failed_ids)

    @property
    def ok(self) -> bool:
        """True unless the cycle was aborted."""
        return self.status is not SyncStatus.FAILED


def merge_notes(
    local_notes: list[NoteRead],
    remote_notes: list[NoteRead],
) -> tuple[list[NoteRead], list[str]]:
    """
    Union-merge remote notes into the local set.

    Args:
        local_notes: Every local note
        remote_notes: Every remote note

    Returns:
        (remote notes missing locally, ids present on both sides with different content)
    """
    local_by_id = {note.id: note for note in local_notes}
    incoming: list[NoteRead] = []
    conflicts: list[str] = []
    for note in remote_notes:
        existing = local_by_id.get(note.id)
        if existing is None:
            incoming.append(note)
        elif existing.content != note.content:
            conflicts.append(note.id)
    return incoming, conflicts


class SyncEngine(BaseService):
    """
    Pull, merge and push between the local and remote stores.

    Only one cycle runs at a time per engine; a second request waits for
    the running cycle to finish and then runs its own. Failures never
    raise: they end up in the returned SyncReport and both stores are
    left in their last good state, so a cycle can always be retried.
    """

    def __init__(self, local: LocalNoteStore, remote: RemoteNoteStore) -> None:
        super().__init__()
        self.local = local
        self.remote = remote
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        """True while a cycle is in progress."""
        return self._lock.locked()

    def _abort(self, report: SyncReport, stage: SyncStage, error: ApplicationError) -> SyncReport:
        report.status = SyncStatus.FAILED
        report.failed_stage = stage
        report.error = error.message
        log_with_source(
            logger, "sync", "error", "Sync aborted",
            stage=stage.value, error=error.message, code=error.code,
        )
        return report

    async def sync(self) -> SyncReport:
        """
        Run one full sync cycle.

        Returns:
            SyncReport describing what was pulled, merged and pushed
        """
        async with self._lock:
            report = SyncReport()
            log_with_source(logger, "sync", "info", "Sync started")

            try:
                remote_notes = await self.remote.fetch_all()
            except RemoteUnavailableError as e:
                return self._abort(report, SyncStage.PULL, e)
            report.pulled = len(remote_notes)

            try:
                local_notes = await self.local.all_notes()
            except StorageError as e:
                return self._abort(report, SyncStage.LOCAL_READ, e)

            incoming, report.conflict_ids = merge_notes(local_notes, remote_notes)
            if report.conflict_ids:
                log_with_source(
                    logger, "sync", "warning", "Divergent copies kept local version",
                    conflicts=len(report.conflict_ids), note_ids=report.conflict_ids,
                )

            try:
                merged = await self.local.insert_many(incoming)
            except StorageError as e:
                return self._abort(report, SyncStage.MERGE, e)
            report.merged_ids = [note.id for note in merged]

            outcome = await self.remote.push_many([*local_notes, *merged])
            report.pushed = outcome.pushed
            report.push_failed_ids = outcome.failed_ids
            if outcome.failed:
                report.status = SyncStatus.PARTIAL

            log_with_source(
                logger, "sync", "info", "Sync finished",
                status=report.status.value,
                pulled=report.pulled,
                merged=report.merged,
                pushed=report.pushed,
                push_failed=report.push_failed,
            )
            return report

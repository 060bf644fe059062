"""
Remote Note Store.

Best-effort replica of the local notes in a remote document store, one
collection per user:

    PUT    {base_url}/users/{user}/{collection}/{note_id}   upsert a document
    GET    {base_url}/users/{user}/{collection}             list documents
    DELETE {base_url}/users/{user}/{collection}/{note_id}   remove a document

Every request goes through the resilience stack (circuit breaker, retry,
semaphore) and is bounded by the client timeout. Transport failures never
escape push() or pull_all(); they are logged and handed to the error
reporter. fetch_all() raises RemoteUnavailableError instead, for callers
that must tell an unreachable remote from an empty one.

Usage:
    remote = RemoteNoteStore("https://notes.example.com", auth=StaticUserAuth("u1"))
    await remote.push(note)
    notes = await remote.pull_all()
    await remote.aclose()
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import aiobreaker
import httpx
from pydantic import ValidationError as PydanticValidationError

from notepad.core.concurrency import create_semaphore
from notepad.core.exceptions import RemoteUnavailableError
from notepad.core.logging import get_logger, log_with_source
from notepad.core.resilience import call_with_resilience, create_circuit_breaker
from notepad.core.security import AuthProvider, resolve_user_scope
from notepad.schemas.note import NoteRead, RemoteNoteDocument

logger = get_logger(__name__)

ErrorReporter = Callable[[str], Awaitable[None] | None]


@dataclass
class PushOutcome:
    """Result of pushing a batch of notes."""

    pushed: int = 0
    failed_ids: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_ids)


class RemoteNoteStore:
    """
    Remote document store client for notes.

    Args:
        base_url: Root URL of the document store
        collection: Collection name under each user
        auth: Auth collaborator scoping documents to a user
        token: Optional bearer token sent with every request
        timeout: Per-request timeout in seconds
        max_concurrent_requests: Upper bound on in-flight requests
        breaker: Circuit breaker (one is created when omitted)
        retry_attempts: Total attempts per request, including the first
        backoff_multiplier: Exponential backoff multiplier between attempts
        backoff_max: Upper bound for a single backoff wait
        error_reporter: Receives a readable message for every failure
        transport: httpx transport override
    """

    def __init__(
        self,
        base_url: str,
        collection: str = "notes",
        *,
        auth: AuthProvider | None = None,
        token: str = "",
        timeout: float = 10.0,
        max_concurrent_requests: int = 8,
        breaker: aiobreaker.CircuitBreaker | None = None,
        retry_attempts: int = 1,
        backoff_multiplier: float = 1,
        backoff_max: float = 10,
        error_reporter: ErrorReporter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.collection = collection
        self.timeout = timeout
        self._auth = auth
        self._token = token
        self._semaphore = create_semaphore("remote-notes", max_concurrent_requests)
        self._breaker = breaker or create_circuit_breaker("remote-notes")
        self._retry_attempts = retry_attempts
        self._backoff_multiplier = backoff_multiplier
        self._backoff_max = backoff_max
        self._error_reporter = error_reporter
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def set_error_reporter(self, reporter: ErrorReporter | None) -> None:
        """Route failure messages to a new reporter."""
        self._error_reporter = reporter

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def _collection_path(self) -> str:
        user = quote(resolve_user_scope(self._auth), safe="")
        return f"/users/{user}/{quote(self.collection, safe='')}"

    def _document_path(self, note_id: str) -> str:
        return f"{self._collection_path()}/{quote(note_id, safe='')}"

    async def _report(self, message: str) -> None:
        if self._error_reporter is None:
            return
        result = self._error_reporter(message)
        if inspect.isawaitable(result):
            await result

    async def _send(
        self,
        method: str,
        path: str,
        *,
        accept: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send one request through the resilience stack.

        Args:
            method: HTTP method
            path: Path below base_url
            accept: Error status codes treated as success (e.g. 404 on delete)

        Raises:
            RemoteUnavailableError: On transport errors, error statuses,
                or while the circuit is open
        """
        client = await self._get_client()

        async def call() -> httpx.Response:
            response = await client.request(method, path, **kwargs)
            if response.status_code not in accept:
                response.raise_for_status()
            return response

        log_with_source(logger, "remote", "debug", "Remote request", method=method, path=path)
        try:
            response = await call_with_resilience(
                self._breaker,
                call,
                max_attempts=self._retry_attempts,
                retry_on=(httpx.TransportError,),
                backoff_multiplier=self._backoff_multiplier,
                backoff_max=self._backoff_max,
                semaphore=self._semaphore,
            )
        except aiobreaker.CircuitBreakerError as e:
            log_with_source(
                logger, "remote", "warning", "Remote circuit open",
                method=method, path=path, error=str(e),
            )
            raise RemoteUnavailableError("Remote store unavailable (circuit open)") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log_with_source(
                logger, "remote", "error", "Remote request rejected",
                method=method, path=path, status_code=status,
            )
            raise RemoteUnavailableError(f"Remote store returned HTTP {status}") from e
        except httpx.HTTPError as e:
            log_with_source(
                logger, "remote", "error", "Remote request failed",
                method=method, path=path, error=str(e),
            )
            raise RemoteUnavailableError(f"Remote store unreachable: {e}") from e

        log_with_source(
            logger, "remote", "debug", "Remote response",
            method=method, path=path, status_code=response.status_code,
        )
        return response

    async def push(self, note: NoteRead) -> bool:
        """
        Upsert one note remotely with its full field set.

        Never raises. Failures are reported and the note is picked up
        again by the next sync cycle.

        Returns:
            True if the remote accepted the document
        """
        document = RemoteNoteDocument.from_note(note)
        try:
            await self._send("PUT", self._document_path(note.id), json=document.to_wire())
        except RemoteUnavailableError as e:
            await self._report(f"Could not upload note '{note.title}': {e.message}")
            return False
        return True

    async def push_many(self, notes: Iterable[NoteRead]) -> PushOutcome:
        """
        Push notes in parallel, bounded by the request semaphore.

        Completion order across notes is not guaranteed.
        """
        batch = list(notes)
        results = await asyncio.gather(*(self.push(note) for note in batch))
        outcome = PushOutcome()
        for note, ok in zip(batch, results):
            if ok:
                outcome.pushed += 1
            else:
                outcome.failed_ids.append(note.id)
        log_with_source(
            logger, "remote", "info", "Pushed notes",
            pushed=outcome.pushed, failed=outcome.failed,
        )
        return outcome

    async def fetch_all(self) -> list[NoteRead]:
        """
        Fetch every remote note for the current user.

        Documents that fail validation are skipped with a warning.

        Raises:
            RemoteUnavailableError: If the remote cannot be read
        """
        response = await self._send("GET", self._collection_path())
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteUnavailableError("Remote store returned malformed JSON") from e

        documents = body.get("documents") if isinstance(body, dict) else body
        if not isinstance(documents, list):
            raise RemoteUnavailableError("Remote store returned an unexpected payload")

        notes: dict[str, NoteRead] = {}
        for raw in documents:
            try:
                note = RemoteNoteDocument.model_validate(raw).to_note()
            except PydanticValidationError as e:
                log_with_source(
                    logger, "remote", "warning", "Skipping invalid remote document",
                    error_count=e.error_count(),
                )
                continue
            notes.setdefault(note.id, note)

        log_with_source(logger, "remote", "info", "Fetched remote notes", count=len(notes))
        return list(notes.values())

    async def pull_all(self) -> list[NoteRead]:
        """
        Fetch every remote note, reporting instead of raising.

        Returns:
            Remote notes, or an empty list when the remote is unreachable
        """
        try:
            return await self.fetch_all()
        except RemoteUnavailableError as e:
            await self._report(f"Could not download notes: {e.message}")
            return []

    async def delete(self, note_id: str) -> bool:
        """
        Remove a note remotely. A document that is already gone counts as removed.

        Returns:
            True if the remote no longer holds the note
        """
        try:
            await self._send("DELETE", self._document_path(note_id), accept=(404,))
        except RemoteUnavailableError as e:
            await self._report(f"Could not remove note from remote store: {e.message}")
            return False
        return True

"""
Resilience Stack.

Every remote document store call runs through, outside-in:

    aiobreaker circuit breaker -> tenacity retry -> semaphore -> call

Retries default to a single attempt; the next sync cycle picks up a
failed step. Breaker transitions and retries are logged with a
``resilience_event`` field, so they can be pulled out of the log file:

    jq 'select(.resilience_event != null)' logs/system.jsonl

Usage:
    breaker = create_circuit_breaker("remote-notes", fail_max=5)
    response = await call_with_resilience(
        breaker,
        lambda: client.get(url),
        max_attempts=3,
        retry_on=(httpx.TransportError,),
    )
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, TypeVar

import aiobreaker
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from notepad.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_STATE_EVENTS = {
    "open": "circuit_breaker_opened",
    "half_open": "circuit_breaker_half_open",
    "closed": "circuit_breaker_closed",
}


def _state_name(state: Any) -> str:
    """'open', 'half_open' or 'closed' for a state object, enum or string."""
    raw = str(getattr(state, "state", state))
    return raw.rsplit(".", 1)[-1].lower().replace("-", "_")


class ResilienceLogger(aiobreaker.CircuitBreakerListener):
    """Logs breaker transitions and recorded failures for one dependency."""

    def __init__(self, dependency: str) -> None:
        self.dependency = dependency

    def state_change(self, cb: aiobreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        name = _state_name(new_state)
        emit = logger.error if name == "open" else logger.info
        emit(
            f"Circuit breaker {self.dependency} is now {name}",
            extra={
                "resilience_event": _STATE_EVENTS.get(name, f"circuit_breaker_{name}"),
                "dependency": self.dependency,
                "previous_state": _state_name(old_state),
                "failure_count": cb.fail_counter,
            },
        )

    def failure(self, cb: aiobreaker.CircuitBreaker, exception: Exception) -> None:
        logger.warning(
            f"Circuit breaker {self.dependency} recorded a failure",
            extra={
                "resilience_event": "circuit_breaker_failure",
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
                "error": str(exception),
            },
        )


def log_retry(retry_state: RetryCallState) -> None:
    """tenacity ``before_sleep`` hook."""
    elapsed = None
    if retry_state.start_time and retry_state.outcome_timestamp:
        elapsed = round((retry_state.outcome_timestamp - retry_state.start_time) * 1000)
    outcome = retry_state.outcome
    name = getattr(retry_state.fn, "__name__", "remote_call")

    logger.warning(
        f"Retrying {name}, attempt {retry_state.attempt_number} failed",
        extra={
            "resilience_event": "retry_attempt",
            "dependency": name,
            "attempt": retry_state.attempt_number,
            "duration_ms": elapsed,
            "error": str(outcome.exception()) if outcome and outcome.failed else None,
        },
    )


def create_circuit_breaker(
    dependency: str,
    fail_max: int = 5,
    timeout_duration: int = 30,
) -> aiobreaker.CircuitBreaker:
    """
    Breaker for one named dependency.

    Args:
        dependency: Name used in log records
        fail_max: Consecutive failures that open the circuit
        timeout_duration: Seconds the circuit stays open before a trial call
    """
    return aiobreaker.CircuitBreaker(
        fail_max=fail_max,
        timeout_duration=timedelta(seconds=timeout_duration),
        listeners=[ResilienceLogger(dependency)],
    )


async def call_with_resilience(
    breaker: aiobreaker.CircuitBreaker,
    call: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 1,
    retry_on: tuple[type[BaseException], ...] = (ConnectionError, TimeoutError),
    backoff_multiplier: float = 1,
    backoff_max: float = 10,
    semaphore: asyncio.Semaphore | None = None,
) -> T:
    """Run one remote call through breaker, retry and semaphore.

    Args:
        breaker: Circuit breaker guarding the dependency
        call: Zero-argument coroutine factory performing the request
        max_attempts: Total attempts including the first
        retry_on: Exception types that trigger a retry
        backoff_multiplier: Exponential backoff multiplier (seconds)
        backoff_max: Upper bound for a single backoff wait (seconds)
        semaphore: Optional limit on concurrent calls

    Returns:
        Whatever the call returns

    Raises:
        aiobreaker.CircuitBreakerError: If the circuit is open
        Exception: The last error from the call once attempts are exhausted
    """

    async def attempt() -> T:
        if semaphore is None:
            return await call()
        async with semaphore:
            return await call()

    async def with_retry() -> T:
        async for attempt_state in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=backoff_multiplier, max=backoff_max),
            retry=retry_if_exception_type(retry_on),
            before_sleep=log_retry,
            reraise=True,
        ):
            with attempt_state:
                return await attempt()
        raise RuntimeError("retry loop exited without a result")

    return await breaker.call_async(with_retry)

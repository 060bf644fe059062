"""Unit tests for notepad.core.resilience."""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock, patch

import aiobreaker
import pytest

from notepad.core.resilience import (
    ResilienceLogger,
    call_with_resilience,
    create_circuit_breaker,
    log_retry,
)


class TestResilienceLogger:
    def test_state_change_open(self):
        """Opening the circuit should log at error level."""
        rl = ResilienceLogger("remote-notes")
        mock_cb = MagicMock()
        mock_cb.fail_counter = 5

        with patch("notepad.core.resilience.logger") as mock_logger:
            rl.state_change(mock_cb, "closed", "open")
            mock_logger.error.assert_called_once()
            assert "circuit_breaker_opened" in str(mock_logger.error.call_args)

    def test_state_change_closed(self):
        """Closing the circuit should log at info level."""
        rl = ResilienceLogger("remote-notes")
        mock_cb = MagicMock()
        mock_cb.fail_counter = 0

        with patch("notepad.core.resilience.logger") as mock_logger:
            rl.state_change(mock_cb, "open", "closed")
            mock_logger.info.assert_called_once()
            assert "circuit_breaker_closed" in str(mock_logger.info.call_args)

    def test_state_change_half_open_from_state_object(self):
        """State objects carrying an enum are normalized like plain strings."""
        rl = ResilienceLogger("remote-notes")
        mock_cb = MagicMock()
        mock_cb.fail_counter = 3
        new_state = MagicMock()
        new_state.state = "CircuitBreakerState.HALF_OPEN"

        with patch("notepad.core.resilience.logger") as mock_logger:
            rl.state_change(mock_cb, "open", new_state)
            mock_logger.info.assert_called_once()
            assert "circuit_breaker_half_open" in str(mock_logger.info.call_args)

    def test_failure(self):
        """Recording a failure should log at warning level."""
        rl = ResilienceLogger("remote-notes")
        mock_cb = MagicMock()
        mock_cb.fail_counter = 2

        with patch("notepad.core.resilience.logger") as mock_logger:
            rl.failure(mock_cb, ConnectionError("timeout"))
            mock_logger.warning.assert_called_once()
            assert "circuit_breaker_failure" in str(mock_logger.warning.call_args)


class TestLogRetry:
    def test_emits_structured_event(self):
        mock_state = MagicMock()
        mock_state.attempt_number = 2
        mock_state.fn.__name__ = "push_note"
        mock_state.outcome_timestamp = 1000.5
        mock_state.start_time = 1000.0
        mock_state.outcome.failed = True
        mock_state.outcome.exception.return_value = ConnectionError("fail")

        with patch("notepad.core.resilience.logger") as mock_logger:
            log_retry(mock_state)
            call_args = mock_logger.warning.call_args
            assert "push_note" in call_args[0][0]
            assert call_args[1]["extra"]["resilience_event"] == "retry_attempt"
            assert call_args[1]["extra"]["attempt"] == 2
            assert call_args[1]["extra"]["duration_ms"] == 500

    def test_handles_no_outcome(self):
        mock_state = MagicMock()
        mock_state.attempt_number = 1
        mock_state.outcome_timestamp = None
        mock_state.start_time = None
        mock_state.outcome = None

        with patch("notepad.core.resilience.logger") as mock_logger:
            log_retry(mock_state)
            extra = mock_logger.warning.call_args[1]["extra"]
            assert extra["duration_ms"] is None
            assert extra["error"] is None


class TestCreateCircuitBreaker:
    def test_returns_configured_breaker(self):
        cb = create_circuit_breaker("remote-notes", fail_max=3, timeout_duration=15)
        assert cb.fail_max == 3
        assert cb.timeout_duration == timedelta(seconds=15)
        assert len(cb.listeners) == 1
        assert isinstance(cb.listeners[0], ResilienceLogger)
        assert cb.listeners[0].dependency == "remote-notes"

    def test_default_fail_max(self):
        assert create_circuit_breaker("default-dep").fail_max == 5


class TestCallWithResilience:
    async def test_returns_call_result(self):
        breaker = create_circuit_breaker("test")

        async def call():
            return 42

        assert await call_with_resilience(breaker, call) == 42

    async def test_single_attempt_by_default(self):
        breaker = create_circuit_breaker("test", fail_max=100)
        attempts = []

        async def call():
            attempts.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await call_with_resilience(breaker, call)
        assert len(attempts) == 1

    async def test_retries_listed_errors(self):
        breaker = create_circuit_breaker("test", fail_max=100)
        attempts = []

        async def call():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("flaky")
            return "ok"

        with patch("notepad.core.resilience.logger"):
            result = await call_with_resilience(
                breaker, call, max_attempts=3, backoff_multiplier=0, backoff_max=0,
            )
        assert result == "ok"
        assert len(attempts) == 3

    async def test_does_not_retry_other_errors(self):
        breaker = create_circuit_breaker("test", fail_max=100)
        attempts = []

        async def call():
            attempts.append(1)
            raise ValueError("bad payload")

        with pytest.raises(ValueError):
            await call_with_resilience(breaker, call, max_attempts=3)
        assert len(attempts) == 1

    async def test_open_circuit_rejects_calls(self):
        breaker = create_circuit_breaker("test", fail_max=1, timeout_duration=60)
        attempts = []

        async def call():
            attempts.append(1)
            raise ConnectionError("down")

        with pytest.raises((ConnectionError, aiobreaker.CircuitBreakerError)):
            await call_with_resilience(breaker, call)
        with pytest.raises(aiobreaker.CircuitBreakerError):
            await call_with_resilience(breaker, call)
        assert len(attempts) == 1

    async def test_semaphore_limits_concurrency(self):
        breaker = create_circuit_breaker("test")
        semaphore = asyncio.Semaphore(2)
        active = 0
        peak = 0

        async def call():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        await asyncio.gather(
            *(call_with_resilience(breaker, call, semaphore=semaphore) for _ in range(6))
        )
        assert peak == 2

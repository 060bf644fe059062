"""Unit tests for notepad.core.concurrency."""

import asyncio
from unittest.mock import patch

from notepad.core.concurrency import BackgroundTasks, Debouncer, create_semaphore


class TestBackgroundTasks:
    async def test_drain_waits_for_tasks(self):
        tasks = BackgroundTasks("test")
        done = []

        async def work(value):
            await asyncio.sleep(0.01)
            done.append(value)

        tasks.spawn(work(1))
        tasks.spawn(work(2))
        assert len(tasks) == 2

        await tasks.drain()
        assert sorted(done) == [1, 2]
        assert len(tasks) == 0

    async def test_failure_is_logged_not_raised(self):
        tasks = BackgroundTasks("test")

        async def boom():
            raise RuntimeError("kaput")

        with patch("notepad.core.concurrency.logger") as mock_logger:
            tasks.spawn(boom())
            await tasks.drain()
            mock_logger.error.assert_called_once()
            assert "kaput" in str(mock_logger.error.call_args)


class TestDebouncer:
    async def test_only_last_call_runs(self):
        debouncer = Debouncer(0.05)
        calls = []

        async def record(value):
            calls.append(value)

        debouncer.call(record, "m")
        debouncer.call(record, "mi")
        debouncer.call(record, "milk")
        await debouncer.flush()

        assert calls == ["milk"]

    async def test_calls_outside_quiet_period_all_run(self):
        debouncer = Debouncer(0.01)
        calls = []

        async def record(value):
            calls.append(value)

        debouncer.call(record, "a")
        await debouncer.flush()
        debouncer.call(record, "b")
        await debouncer.flush()

        assert calls == ["a", "b"]

    async def test_running_call_is_not_cancelled(self):
        debouncer = Debouncer(0.01)
        started = asyncio.Event()
        finished = []

        async def slow(value):
            started.set()
            await asyncio.sleep(0.05)
            finished.append(value)

        async def fast(value):
            finished.append(value)

        debouncer.call(slow, "first")
        await started.wait()
        debouncer.call(fast, "second")
        await debouncer.flush()

        assert sorted(finished) == ["first", "second"]

    async def test_cancel_drops_pending_call(self):
        debouncer = Debouncer(0.05)
        calls = []

        async def record(value):
            calls.append(value)

        debouncer.call(record, "x")
        assert debouncer.pending
        debouncer.cancel()
        await debouncer.flush()
        await asyncio.sleep(0.08)

        assert calls == []
        assert not debouncer.pending


async def test_create_semaphore_capacity():
    semaphore = create_semaphore("test", 2)
    await semaphore.acquire()
    await semaphore.acquire()
    assert semaphore.locked()
    semaphore.release()
    semaphore.release()

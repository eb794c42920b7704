"""Tests for the push-to-pull AsyncMessageQueue state machine."""

import asyncio

import pytest
from request_middleware.streaming.queue import AsyncMessageQueue, ConcurrentPullError, QueueState


async def drain(queue: AsyncMessageQueue) -> list:
    return [item async for item in queue]


class TestBuffering:
    @pytest.mark.asyncio
    async def test_push_push_close_then_pull(self):
        queue = AsyncMessageQueue()
        queue.push("a")
        queue.push("b")
        queue.close()

        assert await drain(queue) == ["a", "b"]
        assert queue.state is QueueState.CLOSED

    @pytest.mark.asyncio
    async def test_pending_pull_is_resolved_by_push(self):
        queue = AsyncMessageQueue()
        pull = asyncio.create_task(queue.pull())
        await asyncio.sleep(0)
        assert not pull.done()

        queue.push("late")

        assert await pull == "late"
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_pending_pull_is_ended_by_close(self):
        queue = AsyncMessageQueue()
        pull = asyncio.create_task(queue.pull())
        await asyncio.sleep(0)

        queue.close()

        with pytest.raises(StopAsyncIteration):
            await pull

    @pytest.mark.asyncio
    async def test_cursors_share_one_buffer(self):
        queue = AsyncMessageQueue()
        for item in "abc":
            queue.push(item)
        queue.close()

        first = aiter(queue)
        assert await anext(first) == "a"
        assert await drain(queue) == ["b", "c"]

    @pytest.mark.asyncio
    async def test_push_after_close_is_dropped(self):
        queue = AsyncMessageQueue()
        queue.close()
        queue.push("ignored")
        assert queue.pending == 0
        assert await drain(queue) == []


class TestFailure:
    @pytest.mark.asyncio
    async def test_failure_is_sticky(self):
        queue = AsyncMessageQueue()
        error = RuntimeError("source broke")
        queue.fail(error)

        for _ in range(3):
            with pytest.raises(RuntimeError) as exc_info:
                await queue.pull()
            assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_buffered_items_are_read_before_the_failure(self):
        queue = AsyncMessageQueue()
        queue.push(1)
        queue.fail(ValueError("broken"))

        assert await queue.pull() == 1
        with pytest.raises(ValueError):
            await queue.pull()

    @pytest.mark.asyncio
    async def test_pending_pull_is_rejected_by_failure(self):
        queue = AsyncMessageQueue()
        pull = asyncio.create_task(queue.pull())
        await asyncio.sleep(0)

        queue.fail(ValueError("broken"))

        with pytest.raises(ValueError, match="broken"):
            await pull

    @pytest.mark.asyncio
    async def test_first_terminal_transition_wins(self):
        closed_first = AsyncMessageQueue()
        closed_first.close()
        closed_first.fail(RuntimeError("late"))
        assert closed_first.state is QueueState.CLOSED
        assert closed_first.failure is None

        failed_first = AsyncMessageQueue()
        error = RuntimeError("first")
        failed_first.fail(error)
        failed_first.fail(RuntimeError("second"))
        failed_first.close()
        assert failed_first.state is QueueState.FAILED
        assert failed_first.failure is error


class TestDone:
    @pytest.mark.asyncio
    async def test_done_resolves_without_any_pull(self):
        queue = AsyncMessageQueue()
        done = queue.done
        queue.push("unread")
        queue.close()
        assert await asyncio.wait_for(done, 1) is None
        assert queue.pending == 1

    @pytest.mark.asyncio
    async def test_done_carries_the_failure(self):
        queue = AsyncMessageQueue()
        error = RuntimeError("broken")
        queue.fail(error)
        assert await queue.done is error

    @pytest.mark.asyncio
    async def test_done_requested_after_termination(self):
        queue = AsyncMessageQueue()
        queue.close()
        assert queue.done.done()


class TestPendingPullSlot:
    @pytest.mark.asyncio
    async def test_second_concurrent_pull_is_rejected(self):
        queue = AsyncMessageQueue()
        first = asyncio.create_task(queue.pull())
        await asyncio.sleep(0)

        with pytest.raises(ConcurrentPullError):
            await queue.pull()

        queue.push("x")
        assert await first == "x"

    @pytest.mark.asyncio
    async def test_cancelled_pull_frees_the_slot(self):
        queue = AsyncMessageQueue()
        first = asyncio.create_task(queue.pull())
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        queue.push("kept")

        assert await queue.pull() == "kept"

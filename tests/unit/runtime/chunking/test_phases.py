"""Unit tests for the scan and chunk phases."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from agen.batch.core import END, ProtocolViolationError, Value
from agen.batch.runtime.chunking import Chunk, Cursor, evaluate_boundary, scan
from agen.batch.runtime.iterators import PullHandle


def never(item, index):
    return False


def always(item, index):
    return True


def make_cursor(items) -> Cursor:
    return Cursor(PullHandle(items))


class TestEvaluateBoundary:
    """Test boundary evaluation."""

    @pytest.mark.asyncio
    async def test_sync_and_async_boundaries(self):
        """Test that sync results are coerced and async results awaited."""

        async def is_even(item, index):
            return item % 2 == 0

        assert await evaluate_boundary(lambda item, index: item, 1, 0) is True
        assert await evaluate_boundary(lambda item, index: None, 1, 0) is False
        assert await evaluate_boundary(is_even, 4, 0) is True
        assert await evaluate_boundary(is_even, 3, 0) is False


class TestScan:
    """Test the scan phase."""

    @pytest.mark.asyncio
    async def test_stops_on_begin(self):
        """Test that scan discards items until begin fires."""
        cursor = make_cursor(["x", "y", "start", "z"])

        assert await scan(cursor, lambda item, index: item == "start")
        assert cursor.pending == Value("start")
        assert cursor.index == 2
        assert cursor.stats.discarded == 2

    @pytest.mark.asyncio
    async def test_exhaustion(self):
        """Test that scan reports exhaustion when begin never fires."""
        cursor = make_cursor([1, 2, 3])

        assert not await scan(cursor, never)
        assert cursor.exhausted
        assert cursor.pending is None
        assert cursor.stats.discarded == 3

    @pytest.mark.asyncio
    async def test_discards_carried_item_untested(self):
        """Test that a pending item is discarded without calling begin."""
        cursor = make_cursor(["carried", "next"])
        await cursor.advance()
        seen = []

        def begin(item, index):
            seen.append((item, index))
            return True

        assert await scan(cursor, begin)
        assert seen == [("next", 1)]
        assert cursor.pending == Value("next")

    @pytest.mark.asyncio
    async def test_exhausted_cursor_skips_handle(self):
        """Test that an exhausted cursor answers END without pulling again."""
        cursor = make_cursor([])
        assert await cursor.advance() is END
        assert cursor.exhausted

        cursor.handle.pull = AsyncMock(return_value=Value("late"))
        assert await cursor.advance() is END
        assert not await scan(cursor, always)
        cursor.handle.pull.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_index_is_zero(self):
        """Test that the first pulled item has index 0."""
        cursor = make_cursor(["a"])
        assert cursor.index == -1

        await scan(cursor, always)
        assert cursor.index == 0


class TestChunk:
    """Test the chunk phase."""

    @pytest.mark.asyncio
    async def test_yields_until_end(self):
        """Test that the end-triggering item is not yielded and stays pending."""
        cursor = make_cursor([1, 2, 3, 4])
        await scan(cursor, always)
        chunk = Chunk(cursor, lambda item, index: item == 3, index=0)

        assert await chunk.collect() == [1, 2]
        assert chunk.closed
        assert cursor.owner is None
        assert cursor.pending == Value(3)
        assert cursor.stats.dropped == 1

    @pytest.mark.asyncio
    async def test_pending_item_yielded_before_exhaustion(self):
        """Test that a lone item is yielded and end is never consulted."""
        cursor = make_cursor(["x"])
        await scan(cursor, always)
        calls = []

        def end(item, index):
            calls.append(item)
            return True

        chunk = Chunk(cursor, end, index=0)

        assert await chunk.collect() == ["x"]
        assert calls == []
        assert cursor.exhausted

    @pytest.mark.asyncio
    async def test_owns_cursor_until_finished(self):
        """Test cursor ownership across the chunk lifecycle."""
        cursor = make_cursor([1, 2, 3])
        await scan(cursor, always)
        chunk = Chunk(cursor, never, index=0)

        assert cursor.owner is chunk
        assert await chunk.__anext__() == 1
        assert cursor.owner is chunk
        await chunk.aclose()
        assert cursor.owner is None

    @pytest.mark.asyncio
    async def test_aclose_pulls_nothing(self, make_source):
        """Test that abandoning a chunk does not touch upstream."""
        source = make_source([1, 2, 3])
        cursor = Cursor(PullHandle(source))
        await scan(cursor, always)
        chunk = Chunk(cursor, never, index=0)

        await chunk.aclose()
        await chunk.aclose()

        assert source.next_calls == 1
        assert await chunk.collect() == []

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        """Test that leaving the context abandons the chunk."""
        cursor = make_cursor([1, 2, 3])
        await scan(cursor, always)

        async with Chunk(cursor, never, index=0) as chunk:
            async for item in chunk:
                break

        assert item == 1
        assert chunk.closed
        assert chunk.size == 1

    @pytest.mark.asyncio
    async def test_stale_chunk_stops(self):
        """Test that a chunk stops once the cursor is closed."""
        cursor = make_cursor([1, 2, 3])
        await scan(cursor, always)
        chunk = Chunk(cursor, never, index=0)
        cursor.closed = True

        assert await chunk.collect() == []
        assert cursor.stats.pulled == 1

    @pytest.mark.asyncio
    async def test_failure_is_recorded(self, boom):
        """Test that a boundary failure ends the chunk and is recorded on the cursor."""
        cursor = make_cursor([1, 2, 3])
        await scan(cursor, always)

        def end(item, index):
            raise boom("end failed")

        chunk = Chunk(cursor, end, index=0)
        assert await chunk.__anext__() == 1
        with pytest.raises(boom):
            await chunk.__anext__()

        assert isinstance(cursor.failure, boom)
        assert chunk.closed
        with pytest.raises(StopAsyncIteration):
            await chunk.__anext__()

    @pytest.mark.asyncio
    async def test_concurrent_advance_rejected(self):
        """Test that advancing one chunk from two tasks fails fast."""
        gate = asyncio.Event()

        async def gated():
            yield 1
            await gate.wait()
            yield 2

        cursor = Cursor(PullHandle(gated()))
        await scan(cursor, always)
        chunk = Chunk(cursor, never, index=0)
        assert await chunk.__anext__() == 1

        pending = asyncio.create_task(chunk.__anext__())
        await asyncio.sleep(0)
        with pytest.raises(ProtocolViolationError) as exc_info:
            await chunk.__anext__()
        assert exc_info.value.chunk_index == 0

        gate.set()
        assert await pending == 2

    @pytest.mark.asyncio
    async def test_timeout_during_end_never_yields_trigger(self):
        """Test that a step cancelled inside end closes the chunk without yielding."""
        cursor = make_cursor(["a", "STOP", "b"])
        await scan(cursor, always)
        end_calls = []

        async def end(item, index):
            end_calls.append(item)
            if item == "STOP":
                await asyncio.sleep(10)
            return item == "STOP"

        chunk = Chunk(cursor, end, index=0)
        assert await chunk.__anext__() == "a"
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(chunk.__anext__(), timeout=0.01)

        assert chunk.closed
        assert cursor.owner is None
        assert cursor.failure is None
        assert await chunk.collect() == []
        assert end_calls == ["STOP"]

    @pytest.mark.asyncio
    async def test_timeout_during_pull(self):
        """Test that a step cancelled inside a pull closes the chunk."""

        async def slow():
            yield 1
            await asyncio.sleep(10)
            yield 2

        cursor = Cursor(PullHandle(slow()))
        await scan(cursor, always)
        chunk = Chunk(cursor, never, index=0)
        assert await chunk.__anext__() == 1

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(chunk.__anext__(), timeout=0.01)

        assert chunk.closed
        assert cursor.owner is None
        assert await chunk.collect() == []

    @pytest.mark.asyncio
    async def test_close_during_pull_keeps_cursor(self):
        """Test that closing mid-pull holds the cursor until the pull returns."""
        gate = asyncio.Event()

        async def gated():
            yield 1
            await gate.wait()
            yield 2
            yield 3

        cursor = Cursor(PullHandle(gated()))
        await scan(cursor, always)
        chunk = Chunk(cursor, never, index=0)
        assert await chunk.__anext__() == 1

        step = asyncio.create_task(chunk.__anext__())
        await asyncio.sleep(0)
        await chunk.aclose()

        assert cursor.owner is chunk
        assert not chunk.closed

        gate.set()
        with pytest.raises(StopAsyncIteration):
            await step

        assert chunk.closed
        assert chunk.size == 1
        assert cursor.owner is None
        assert cursor.pending == Value(2)
        assert await scan(cursor, always)
        assert cursor.pending == Value(3)

"""Chunk stream driver and the public ``chunks()`` operation.

The driver alternates a scan phase and a chunk phase over one upstream
provider. It is demand-driven: the next scan runs only when the outer
consumer asks for the next chunk, and it refuses to run while the previous
chunk still owns the cursor.

Request Flow:
    1. Check the previous chunk: a recorded failure is re-raised, an open
       chunk is a protocol violation
    2. Scan: discard items until ``begin`` fires or upstream is exhausted
    3. Yield a new Chunk holding the cursor, then suspend

The driver runs as the body of ``with_iterators``, which closes the
provider on every exit path.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any, Generic, TypeVar

from ...core.exceptions import CleanupError, ProtocolViolationError
from ...core.options import SplitOptions
from ..iterators import PullHandle, close_provider, with_iterators
from .definitions import Boundary, ChunkStats, Cursor
from .phases import Chunk, scan
from .telemetry import log_stream_complete, log_stream_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChunkStream(Generic[T]):
    """Lazy stream of chunks over one upstream provider.

    Use it as an async context manager (or call ``aclose()``) so the provider
    is closed when iteration stops early.
    """

    def __init__(
        self,
        provider: Any,
        begin: Boundary,
        end: Boundary,
        options: SplitOptions | None = None,
    ) -> None:
        """Initialize the stream. Nothing is pulled until the first request.

        Args:
            provider: Async iterable, async iterator or sync iterable
            begin: Boundary that opens a chunk, called as ``begin(item, index)``
            end: Boundary that closes a chunk, called as ``end(item, index)``
            options: Stream options (defaults to ``SplitOptions()``)
        """
        self._provider = provider
        self._begin = begin
        self._end = end
        self._options = options if options is not None else SplitOptions()
        self._stats = ChunkStats()
        self._source = with_iterators([provider], self._drive)
        self._started = False

    @property
    def options(self) -> SplitOptions:
        return self._options

    @property
    def stats(self) -> ChunkStats:
        return self._stats

    async def _drive(self, handles: list[PullHandle[Any]]) -> AsyncIterator[Chunk[T]]:
        [handle] = handles
        cursor = Cursor(handle, stats=self._stats)
        stream_id = self._options.stream_id
        emit = self._options.emit_telemetry
        try:
            while True:
                if cursor.failure is not None:
                    raise cursor.failure
                if cursor.owner is not None:
                    open_chunk = cursor.owner
                    raise ProtocolViolationError(
                        f"Chunk {open_chunk.index} must be drained or closed "
                        "before requesting the next chunk",
                        chunk_index=open_chunk.index,
                    )
                if not await scan(cursor, self._begin):
                    break
                chunk: Chunk[T] = Chunk(
                    cursor,
                    self._end,
                    index=self._stats.chunks_emitted,
                    stream_id=stream_id,
                    emit_telemetry=emit,
                )
                self._stats.chunks_emitted += 1
                yield chunk
        except Exception as e:
            if emit:
                log_stream_error(
                    stream_id=stream_id,
                    last_item_index=cursor.index,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
            raise
        finally:
            cursor.closed = True

        if emit:
            log_stream_complete(stream_id=stream_id, stats=self._stats)

    def __aiter__(self) -> ChunkStream[T]:
        return self

    async def __anext__(self) -> Chunk[T]:
        self._started = True
        return await self._source.__anext__()

    async def aclose(self) -> None:
        """Stop the stream and close the upstream provider.

        Raises:
            CleanupError: If the provider fails to close
        """
        if not self._started:
            # The host never ran, so it holds no handle to release.
            self._started = True
            await self._source.aclose()
            try:
                await close_provider(self._provider)
            except Exception as e:
                raise CleanupError("Failed to close 1 of 1 providers", [e]) from e
            return
        await self._source.aclose()

    async def collect(self) -> list[list[T]]:
        """Drain every chunk into a list of lists."""
        groups: list[list[T]] = []
        async for chunk in self:
            groups.append(await chunk.collect())
        return groups

    async def __aenter__(self) -> ChunkStream[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def chunks(
    provider: Any,
    begin: Boundary,
    end: Boundary,
    *,
    options: SplitOptions | None = None,
    **overrides: Any,
) -> ChunkStream[Any]:
    """Split an upstream sequence into delimited chunks.

    Items are skipped until ``begin(item, index)`` is true; that item opens a
    chunk. The chunk then yields items until ``end(item, index)`` is true for
    a freshly pulled item, which is dropped. ``index`` is the 0-based pull
    order of the item. Boundaries may be sync or async.

    Args:
        provider: Async iterable, async iterator or sync iterable
        begin: Boundary that opens a chunk
        end: Boundary that closes a chunk
        options: Stream options
        **overrides: Option fields overriding ``options`` (stream_id, emit_telemetry)

    Returns:
        ChunkStream yielding Chunk objects

    Raises:
        TypeError: If a boundary is not callable
        pydantic.ValidationError: If an option value is invalid

    Example:
        >>> stream = chunks(numbers, lambda v, i: v % 2, lambda v, i: v % 2 == 0)
        >>> await stream.collect()
        [[1], [3], [5]]
    """
    if not callable(begin) or not callable(end):
        raise TypeError("begin and end must be callable")
    if overrides:
        base = options.model_dump() if options is not None else {}
        options = SplitOptions(**{**base, **overrides})
    elif options is None:
        options = SplitOptions()
    logger.debug("Creating chunk stream", extra={"stream_id": options.stream_id})
    return ChunkStream(provider, begin, end, options)

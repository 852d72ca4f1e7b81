"""Scan and chunk phases over a shared cursor.

Both phases advance the same ``Cursor``. The scan phase skips items until
``begin`` fires; the chunk phase hands items out until ``end`` fires.

Hand-off rules:
    - The item that satisfies ``begin`` stays pending and becomes the
      first item of the next chunk.
    - The item that satisfies ``end`` is never yielded. It stays pending
      and the next scan discards it without testing it against ``begin``.
    - Exhaustion produces no item; the current phase simply stops.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from ...core.exceptions import ProtocolViolationError
from ...core.results import is_end
from .definitions import Boundary, Cursor, evaluate_boundary
from .telemetry import log_chunk_completed, log_chunk_started

T = TypeVar("T")


async def scan(cursor: Cursor, begin: Boundary) -> bool:
    """Skip items until one satisfies ``begin``.

    A pending item left over from the previous chunk is discarded first,
    untested.

    Returns:
        True if a pending item opens the next chunk, False if upstream is exhausted
    """
    cursor.discard()
    while True:
        result = await cursor.advance()
        if is_end(result):
            return False
        if await evaluate_boundary(begin, result.value, cursor.index):
            return True
        cursor.discard()


class Chunk(Generic[T]):
    """Lazy, single-pass run of upstream items.

    A chunk owns the cursor from the moment it is created until it finishes,
    either naturally (``end`` fired or upstream exhausted) or because the
    consumer closed it. Drain it or close it before requesting the next
    chunk from the stream.

    Example:
        >>> async with chunks(source, begin, end) as stream:
        ...     async for chunk in stream:
        ...         async with chunk:
        ...             async for item in chunk:
        ...                 handle(item)
    """

    def __init__(
        self,
        cursor: Cursor,
        end: Boundary,
        *,
        index: int,
        stream_id: str = "chunks",
        emit_telemetry: bool = True,
    ) -> None:
        """Take ownership of ``cursor``, whose pending item opens the chunk.

        Args:
            cursor: Shared cursor positioned on the item that satisfied ``begin``
            end: Boundary that closes the chunk
            index: Zero-based ordinal of the chunk within its stream
            stream_id: Stream identifier for telemetry
            emit_telemetry: Whether lifecycle events are logged
        """
        self._cursor = cursor
        self._end = end
        self._index = index
        self._stream_id = stream_id
        self._emit_telemetry = emit_telemetry
        self._size = 0
        self._finished = False
        self._advancing = False
        self._close_requested = False
        cursor.owner = self
        if emit_telemetry:
            log_chunk_started(
                stream_id=stream_id, chunk_index=index, first_item_index=cursor.index
            )

    @property
    def index(self) -> int:
        return self._index

    @property
    def size(self) -> int:
        """Number of items yielded so far."""
        return self._size

    @property
    def closed(self) -> bool:
        return self._finished

    def __aiter__(self) -> Chunk[T]:
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration
        if self._cursor.closed or self._cursor.owner is not self:
            # The stream moved on or shut down; never pull through a stale chunk.
            self._finish(abandoned=True)
            raise StopAsyncIteration
        if self._advancing:
            raise ProtocolViolationError(
                f"Chunk {self._index} is already being advanced", chunk_index=self._index
            )

        self._advancing = True
        try:
            has_item = self._cursor.pending is not None or await self._advance()
        except BaseException as e:
            # A cancelled step may leave an item in pending that end never judged.
            if isinstance(e, Exception):
                self._cursor.failure = e
            self._finish(abandoned=not isinstance(e, Exception))
            raise
        finally:
            self._advancing = False

        if self._close_requested:
            self._finish(abandoned=True)
            raise StopAsyncIteration
        if not has_item:
            self._finish()
            raise StopAsyncIteration
        self._size += 1
        return self._cursor.take()

    async def _advance(self) -> bool:
        result = await self._cursor.advance()
        if is_end(result):
            return False
        if await evaluate_boundary(self._end, result.value, self._cursor.index):
            self._cursor.drop()
            return False
        return True

    def _finish(self, *, abandoned: bool = False) -> None:
        if self._finished:
            return
        self._finished = True
        if self._cursor.owner is self:
            self._cursor.owner = None
        if self._emit_telemetry:
            log_chunk_completed(
                stream_id=self._stream_id,
                chunk_index=self._index,
                items_yielded=self._size,
                abandoned=abandoned,
            )

    async def aclose(self) -> None:
        """Abandon the chunk. Pulls nothing; safe to call repeatedly.

        If a step is still pulling, the chunk keeps the cursor until that
        step returns; the step then ends the chunk instead of yielding.
        """
        if self._advancing:
            self._close_requested = True
            return
        self._finish(abandoned=True)

    async def collect(self) -> list[T]:
        """Drain the remaining items into a list."""
        return [item async for item in self]

    async def __aenter__(self) -> Chunk[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        state = "closed" if self._finished else "open"
        return f"Chunk(index={self._index}, size={self._size}, {state})"

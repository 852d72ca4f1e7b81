"""Cursor state and counters shared by the scan and chunk phases.

The cursor is the single fetch point between the upstream handle and the
two phases. It holds at most one un-yielded item (``pending``) and tracks
the 0-based ordinal of the last pulled item.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ...core.results import END, PullResult, Value, is_end
from ..iterators import PullHandle

Boundary = Callable[[Any, int], bool | Awaitable[bool]]


@dataclass
class ChunkStats:
    """Counters for one chunk stream.

    Every pulled item ends up in exactly one of ``discarded``, ``yielded``
    or ``dropped`` once the stream has run to completion.

    Attributes:
        pulled: Items fetched from upstream
        discarded: Items skipped while scanning for a chunk start
        yielded: Items handed to chunk consumers
        dropped: Items that closed a chunk (end boundary hits)
        chunks_emitted: Chunks handed to the outer consumer
    """

    pulled: int = 0
    discarded: int = 0
    yielded: int = 0
    dropped: int = 0
    chunks_emitted: int = 0


@dataclass
class Cursor:
    """Single-item look-ahead over one upstream handle.

    Attributes:
        handle: Upstream pull handle
        stats: Counters updated on every transition
        pending: Pulled item not yet yielded or discarded
        exhausted: Whether upstream has signalled its end
        index: Ordinal of the last pulled item (-1 before the first pull)
        owner: Chunk currently holding the cursor, None while scanning
        closed: Set once the driver has finished; stale chunks stop on it
        failure: Terminal error raised while a chunk was advancing
    """

    handle: PullHandle[Any]
    stats: ChunkStats = field(default_factory=ChunkStats)
    pending: Value[Any] | None = None
    exhausted: bool = False
    index: int = -1
    owner: Any = None
    closed: bool = False
    failure: BaseException | None = None
    _settled: bool = field(default=False, repr=False)

    async def advance(self) -> PullResult:
        """Pull the next item into ``pending``.

        The previous pending item must already be accounted for. Once
        exhausted, the handle is not consulted again.
        """
        if self.exhausted:
            return END
        result = await self.handle.pull()
        if is_end(result):
            self.exhausted = True
            self.pending = None
            return result
        self.index += 1
        self.stats.pulled += 1
        self.pending = result
        self._settled = False
        return result

    def take(self) -> Any:
        """Hand the pending item to a chunk consumer."""
        assert self.pending is not None
        item = self.pending.value
        self.pending = None
        self.stats.yielded += 1
        return item

    def drop(self) -> None:
        """Count the pending item as a chunk delimiter.

        It stays pending; the next scan discards it without testing it.
        """
        self.stats.dropped += 1
        self._settled = True

    def discard(self) -> None:
        """Throw the pending item away, if any."""
        if self.pending is None:
            return
        if not self._settled:
            self.stats.discarded += 1
        self.pending = None
        self._settled = False


async def evaluate_boundary(boundary: Boundary, item: Any, index: int) -> bool:
    """Call a boundary function, awaiting its result when needed."""
    result = boundary(item, index)
    if inspect.isawaitable(result):
        result = await result
    return bool(result)

"""Runtime orchestration components."""

from .chunking import Chunk, ChunkStats, ChunkStream, Cursor, chunks
from .iterators import PullHandle, close_all, close_provider, with_iterators

__all__ = [
    "Chunk",
    "ChunkStats",
    "ChunkStream",
    "Cursor",
    "chunks",
    "PullHandle",
    "close_all",
    "close_provider",
    "with_iterators",
]

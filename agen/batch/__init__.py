"""Agen Batch - splitting async streams into delimited chunks."""

from .core import (
    END,
    BatchError,
    CleanupError,
    End,
    ProtocolViolationError,
    PullResult,
    SplitOptions,
    Value,
    is_end,
)
from .runtime import (
    Chunk,
    ChunkStats,
    ChunkStream,
    Cursor,
    PullHandle,
    chunks,
    close_all,
    with_iterators,
)

__version__ = "0.1.0"

__all__ = [
    # Operation
    "chunks",
    "Chunk",
    "ChunkStream",
    "ChunkStats",
    "Cursor",
    "SplitOptions",
    # Provider hosting
    "PullHandle",
    "with_iterators",
    "close_all",
    # Pull results
    "Value",
    "End",
    "END",
    "PullResult",
    "is_end",
    # Exceptions
    "BatchError",
    "ProtocolViolationError",
    "CleanupError",
]

"""Structured logging for chunk streams.

Each helper emits one event-named record with a structured ``extra``
payload.
"""

from __future__ import annotations

import logging
from dataclasses import asdict

from .definitions import ChunkStats

logger = logging.getLogger(__name__)


def log_chunk_started(*, stream_id: str, chunk_index: int, first_item_index: int) -> None:
    """Log the start of a chunk.

    Args:
        stream_id: Stream identifier
        chunk_index: Zero-based ordinal of the chunk within the stream
        first_item_index: Upstream ordinal of the item that opened the chunk
    """
    logger.debug(
        "chunk_started",
        extra={
            "stream_id": stream_id,
            "chunk_index": chunk_index,
            "first_item_index": first_item_index,
        },
    )


def log_chunk_completed(
    *,
    stream_id: str,
    chunk_index: int,
    items_yielded: int,
    abandoned: bool = False,
) -> None:
    """Log completion or abandonment of a chunk.

    Args:
        stream_id: Stream identifier
        chunk_index: Zero-based ordinal of the chunk within the stream
        items_yielded: Number of items the chunk handed out
        abandoned: Whether the consumer closed the chunk early
    """
    logger.debug(
        "chunk_completed",
        extra={
            "stream_id": stream_id,
            "chunk_index": chunk_index,
            "items_yielded": items_yielded,
            "abandoned": abandoned,
        },
    )


def log_stream_complete(*, stream_id: str, stats: ChunkStats) -> None:
    """Log natural completion of a chunk stream."""
    logger.info(
        "chunk_stream_complete",
        extra={"stream_id": stream_id, **asdict(stats)},
    )


def log_stream_error(
    *,
    stream_id: str,
    last_item_index: int,
    error_type: str,
    error_message: str,
) -> None:
    """Log a failure that ended a chunk stream.

    Args:
        stream_id: Stream identifier
        last_item_index: Ordinal of the last item pulled before the failure
        error_type: Exception class name
        error_message: Exception message
    """
    logger.error(
        "chunk_stream_error",
        extra={
            "stream_id": stream_id,
            "last_item_index": last_item_index,
            "error_type": error_type,
            "error_message": error_message,
        },
    )

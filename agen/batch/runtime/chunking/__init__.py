"""Splitting one upstream sequence into delimited chunks.

This module regroups an open-ended async sequence into a lazy stream of
sub-sequences using two caller-supplied boundary functions, with a single
item of look-ahead.

Architecture:
    The chunking layer consists of:
    - definitions.py: Cursor state, counters and boundary evaluation
    - phases.py: Scan phase (begin boundary) and Chunk phase (end boundary)
    - stream.py: Driver alternating the phases, and the chunks() operation
    - telemetry.py: Structured logging

Usage:
    >>> async with chunks(source, begin, end) as stream:
    ...     async for chunk in stream:
    ...         items = await chunk.collect()
"""

from __future__ import annotations

from .definitions import Boundary, ChunkStats, Cursor, evaluate_boundary
from .phases import Chunk, scan
from .stream import ChunkStream, chunks

__all__ = [
    "Boundary",
    "Chunk",
    "ChunkStats",
    "ChunkStream",
    "Cursor",
    "chunks",
    "evaluate_boundary",
    "scan",
]

"""Custom exception hierarchy."""

from __future__ import annotations


class BatchError(Exception):
    """Base exception for all library errors."""

    pass


class ProtocolViolationError(BatchError):
    """Consumer broke the one-live-chunk protocol.

    Raised when the next chunk is requested while the previous one is still
    open, or when a single chunk is advanced concurrently. Both would
    interleave pulls on the shared cursor.
    """

    def __init__(self, message: str, chunk_index: int | None = None) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index


class CleanupError(BatchError):
    """One or more upstream providers failed to close."""

    def __init__(self, message: str, errors: list[BaseException] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

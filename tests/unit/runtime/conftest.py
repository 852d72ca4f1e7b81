"""Shared fixtures for runtime tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest


class Boom(Exception):
    """Failure raised by fake providers and boundaries."""


class RecordingSource:
    """Async iterator over a list that records every pull and close."""

    def __init__(
        self,
        items: list[Any],
        *,
        fail_at: int | None = None,
        close_error: BaseException | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            items: Items to produce, in order
            fail_at: Position at which ``__anext__`` raises Boom instead
            close_error: Exception raised from ``aclose()``
        """
        self.items = list(items)
        self.fail_at = fail_at
        self.close_error = close_error
        self.pulled: list[Any] = []
        self.next_calls = 0
        self.close_calls = 0
        self._pos = 0

    def __aiter__(self) -> RecordingSource:
        return self

    async def __anext__(self) -> Any:
        self.next_calls += 1
        await asyncio.sleep(0)
        if self._pos == self.fail_at:
            raise Boom(f"pull {self._pos} failed")
        if self._pos >= len(self.items):
            raise StopAsyncIteration
        item = self.items[self._pos]
        self._pos += 1
        self.pulled.append(item)
        return item

    async def aclose(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def make_source():
    """Factory for RecordingSource instances."""
    return RecordingSource


@pytest.fixture
def boom():
    """Exception class raised by fake providers."""
    return Boom

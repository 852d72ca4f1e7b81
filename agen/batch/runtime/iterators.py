"""Scoped ownership of upstream providers.

``with_iterators`` hosts a driver body over one or more upstream providers.
The body receives one ``PullHandle`` per provider and yields output values,
which are forwarded unchanged. Whatever way the host ends (natural
completion, early ``aclose()`` by the consumer, or a failure raised by the
body) every provider is closed exactly once.

Architecture:
    - PullHandle: single fetch point for one provider, idempotent end
    - with_iterators: async generator that forwards the body's output and
      releases all handles in a ``finally`` block
    - close_all: releases every handle, continuing past failures, then
      surfaces them as one CleanupError

See Also:
    - chunking.stream: the chunk driver is hosted as a single-provider body
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from contextlib import aclosing
from typing import Any, Generic, TypeVar

from ..core.exceptions import CleanupError
from ..core.results import END, PullResult, Value

logger = logging.getLogger(__name__)

T = TypeVar("T")
Y = TypeVar("Y")

DriverBody = Callable[[list["PullHandle[Any]"]], AsyncIterator[Y]]


class PullHandle(Generic[T]):
    """Pull-based view over one upstream provider.

    Accepts an async iterable, an async iterator or a plain iterable.
    Once the provider signals exhaustion, further pulls return ``END``
    without touching the provider again.
    """

    def __init__(self, provider: Any, *, position: int = 0) -> None:
        """Initialize the handle. The provider is not iterated until the first pull.

        Args:
            provider: Async iterable, async iterator or sync iterable
            position: Index of the provider in the host's provider list

        Raises:
            TypeError: If provider is not iterable
        """
        if hasattr(provider, "__aiter__"):
            self._is_async = True
        elif isinstance(provider, Iterable):
            self._is_async = False
        else:
            raise TypeError(f"Provider {type(provider).__name__!r} is not iterable")
        self._provider = provider
        self._iterator: Any = None
        self._position = position
        self._exhausted = False
        self._closed = False
        self._pulls = 0

    @property
    def position(self) -> int:
        return self._position

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pulls(self) -> int:
        """Number of items successfully pulled so far."""
        return self._pulls

    async def pull(self) -> PullResult:
        """Fetch the next item.

        Returns:
            ``Value(item)`` for a fresh item, ``END`` once exhausted or closed

        Raises:
            Exception: Any failure raised by the provider, unchanged
        """
        if self._exhausted or self._closed:
            return END
        if self._iterator is None:
            self._iterator = self._provider.__aiter__() if self._is_async else iter(self._provider)
        try:
            if self._is_async:
                item = await self._iterator.__anext__()
            else:
                item = next(self._iterator)
        except (StopAsyncIteration, StopIteration):
            self._exhausted = True
            return END
        self._pulls += 1
        return Value(item)

    async def close(self) -> None:
        """Close the underlying provider. Only the first call has an effect."""
        if self._closed:
            return
        self._closed = True
        await close_provider(self._iterator if self._iterator is not None else self._provider)


async def close_provider(target: Any) -> None:
    """Close ``target`` with ``aclose()`` or ``close()``; no-op if it has neither."""
    aclose = getattr(target, "aclose", None)
    if aclose is not None:
        await aclose()
        return
    close = getattr(target, "close", None)
    if close is not None:
        close()


async def close_all(handles: Sequence[PullHandle[Any]]) -> None:
    """Close every handle in order, then raise collected failures.

    Raises:
        CleanupError: If at least one provider failed to close
    """
    errors: list[BaseException] = []
    for handle in handles:
        try:
            await handle.close()
        except Exception as e:
            logger.warning(
                "provider_close_failed",
                extra={
                    "position": handle.position,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            errors.append(e)
    if errors:
        raise CleanupError(
            f"Failed to close {len(errors)} of {len(handles)} providers", errors
        ) from errors[0]


async def with_iterators(
    providers: Sequence[Any],
    body: DriverBody[Y],
) -> AsyncIterator[Y]:
    """Run ``body`` over pull handles for ``providers`` and forward its output.

    Args:
        providers: Non-empty ordered list of upstream providers
        body: Async generator function receiving one handle per provider

    Yields:
        Every value yielded by the body, unchanged and in order

    Raises:
        ValueError: If no provider is given
        CleanupError: If closing a provider fails
    """
    if not providers:
        raise ValueError("with_iterators() requires at least one provider")

    handles: list[PullHandle[Any]] = []
    try:
        for position, provider in enumerate(providers):
            handles.append(PullHandle(provider, position=position))
        async with aclosing(body(handles)) as values:
            async for value in values:
                yield value
    finally:
        await close_all(handles)

"""Pull results returned by upstream handles.

A pull either produces a value (``Value``) or signals exhaustion (``END``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Value(Generic[T]):
    """One item pulled from upstream."""

    value: T


class End:
    """Exhaustion marker. Use the ``END`` singleton."""

    _instance: End | None = None

    def __new__(cls) -> End:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END"


END = End()

PullResult = Value[Any] | End


def is_end(result: PullResult) -> bool:
    """Return True if the pull result signals exhaustion."""
    return isinstance(result, End)

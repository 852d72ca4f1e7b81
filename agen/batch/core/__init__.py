"""Core components."""

from .exceptions import BatchError, CleanupError, ProtocolViolationError
from .options import SplitOptions
from .results import END, End, PullResult, Value, is_end

__all__ = [
    "BatchError",
    "CleanupError",
    "ProtocolViolationError",
    "SplitOptions",
    "END",
    "End",
    "PullResult",
    "Value",
    "is_end",
]

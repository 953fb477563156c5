"""Small helpers shared by the walker and the scheduler."""
from .events import EventEmitter, ProgressReporter
from .format import format_duration, format_size, format_rate

__all__ = [
    "EventEmitter",
    "ProgressReporter",
    "format_duration",
    "format_size",
    "format_rate",
]

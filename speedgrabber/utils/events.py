from typing import Callable, Dict, List, Optional, Tuple
import asyncio
import logging
import time

from speedgrabber.models import ProgressSnapshot

logger = logging.getLogger(__name__)


class EventEmitter:
    """Simple event emitter for scan and upload events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._lock = asyncio.Lock()

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if event_name not in self._listeners:
            self._listeners[event_name] = []
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if event_name in self._listeners:
            if callback in self._listeners[event_name]:
                self._listeners[event_name].remove(callback)

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._listeners.get(event_name))

    async def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners; a failing listener never breaks the run."""
        if event_name not in self._listeners:
            return

        async with self._lock:
            for callback in self._listeners[event_name][:]:  # Copy list to avoid modification during iteration
                try:
                    if asyncio.iscoroutinefunction(callback):
                        await callback(*args, **kwargs)
                    else:
                        callback(*args, **kwargs)
                except Exception as e:
                    logger.error(f"Error in event listener for {event_name}: {e}")


class ProgressReporter:
    """
    Throttled progress sink.

    Emits ``progress`` (plus any extra ``topics``) with a ProgressSnapshot at
    most once per ``interval`` seconds; ``force=True`` bypasses the throttle
    (final snapshot).
    """

    def __init__(self, events: Optional[EventEmitter] = None, interval: float = 1.0,
                 clock: Callable[[], float] = time.monotonic, topics: Tuple[str, ...] = ()):
        self._events = events or EventEmitter()
        self._topics = ("progress",) + tuple(topics)
        self._interval = interval
        self._clock = clock
        self._last_emit: Optional[float] = None
        self.emitted = 0

    @property
    def events(self) -> EventEmitter:
        return self._events

    def due(self) -> bool:
        if self._last_emit is None:
            return True
        return self._clock() - self._last_emit >= self._interval

    async def report(self, snapshot: ProgressSnapshot, force: bool = False) -> bool:
        """Emit ``snapshot`` if the interval elapsed. Returns whether it was emitted."""
        if not force and not self.due():
            return False
        self._last_emit = self._clock()
        self.emitted += 1
        for topic in self._topics:
            await self._events.emit(topic, snapshot)
        return True

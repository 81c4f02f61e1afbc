"""Lifecycle hook registry for upload attempts."""
from typing import Callable, Dict, List, Tuple
import inspect
import logging
logger = logging.getLogger(__name__)


ATTEMPT_STARTED = "attempt_started"
UPLOAD_BEGIN = "upload_begin"
FAILURE = "failure"
SUCCESS = "success"

LIFECYCLE_EVENTS: Tuple[str, ...] = (ATTEMPT_STARTED, UPLOAD_BEGIN, FAILURE, SUCCESS)


class EventEmitter:
    """
    Dispatches upload lifecycle notifications to observers.

    Only the names in LIFECYCLE_EVENTS are accepted, so a misspelled hook
    fails at registration instead of never firing. Listeners may be plain
    callables or return an awaitable (coroutine functions, objects with an
    async __call__); awaitables are awaited in registration order.
    """

    def __init__(self, event_names: Tuple[str, ...] = LIFECYCLE_EVENTS):
        self._listeners: Dict[str, List[Callable]] = {name: [] for name in event_names}

    def _listeners_for(self, event_name: str) -> List[Callable]:
        try:
            return self._listeners[event_name]
        except KeyError:
            raise ValueError(
                f"Unknown upload event '{event_name}', expected one of: {', '.join(self._listeners)}"
            ) from None

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if not callable(callback):
            raise TypeError(f"Listener for '{event_name}' is not callable: {callback!r}")
        listeners = self._listeners_for(event_name)
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        listeners = self._listeners_for(event_name)
        if callback in listeners:
            listeners.remove(callback)

    async def emit(self, event_name: str, *args):
        """Notify every listener; a failing listener is logged and skipped."""
        for callback in self._listeners_for(event_name)[:]:
            try:
                result = callback(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in '{event_name}' listener {callback!r}: {e}")

"""Event sink abstraction between the provider and chatbot consumers.

The normalizer and the provider never subclass an emitter. They receive
an ``EventSink`` and call ``emit``. This keeps them testable with
``RecordingEventSink`` and lets the application wire in ``EventBus`` or
any other pub/sub implementation.
"""

from collections import defaultdict
from typing import Any, Callable, Protocol

import logfire

EventHandler = Callable[[Any], None]


class EventSink(Protocol):
    """Protocol for anything canonical events can be emitted onto."""

    def emit(self, event: str, payload: Any = None) -> None:
        """Deliver ``payload`` to everyone interested in ``event``."""
        ...


class EventBus:
    """In-process publish/subscribe bus.

    Handlers run synchronously in registration order. A failing handler is
    logged and does not prevent the remaining handlers from running.

    Example:
        >>> bus = EventBus()
        >>> bus.on("ready", lambda payload: print("ready", payload))
        >>> bus.emit("ready", True)
        ready True
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe ``handler`` to ``event``."""
        self._handlers[event].append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        """Unsubscribe ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(payload)
            except Exception as e:
                logfire.error(
                    "Event handler failed",
                    event=event,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                    error_type=type(e).__name__,
                )


class RecordingEventSink:
    """Sink that records every emission, for tests and diagnostics.

    Example:
        >>> sink = RecordingEventSink()
        >>> sink.emit("ready", True)
        >>> sink.events
        [('ready', True)]
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def emit(self, event: str, payload: Any = None) -> None:
        self.events.append((event, payload))

    def payloads(self, event: str) -> list[Any]:
        """Return the payloads emitted for ``event``, in order."""
        return [payload for name, payload in self.events if name == event]

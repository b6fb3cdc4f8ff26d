"""
Synchronous publish/subscribe for connection and server notifications.

Handlers are kept per event name in registration order and called inline
by `emit`, so they observe events in exactly the order the byte stream
produced them.
"""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Connection events
EVENT_CHUNK = "chunk"
EVENT_IAC = "iac"
EVENT_WILL = "will"
EVENT_WONT = "wont"
EVENT_DO = "do"
EVENT_DONT = "dont"
EVENT_SB = "sb"
EVENT_DATA = "data"
EVENT_GMCP = "gmcp"
EVENT_SUPPORTS = "supports"
EVENT_ERROR = "error"
EVENT_END = "end"
EVENT_CLOSE = "close"

# Server events
EVENT_LISTENING = "listening"
EVENT_CONNECTION = "connection"

Handler = Callable[..., Any]


class EventEmitter:
    """Maps event names to ordered handler lists."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Handler:
        """Register `handler` for `event`. Returns the handler so it can decorate."""
        self._handlers.setdefault(event, []).append(handler)
        logger.debug(f"[EVENT] Added handler for event: {event}")
        return handler

    def once(self, event: str, handler: Handler) -> Handler:
        """Register a handler that removes itself after the first call."""

        def _once(*args: Any) -> Any:
            self.off(event, _once)
            return handler(*args)

        self.on(event, _once)
        return handler

    def off(self, event: str, handler: Handler) -> None:
        """Remove a previously registered handler."""
        try:
            self._handlers.get(event, []).remove(handler)
        except ValueError:
            logger.warning(f"[EVENT] Handler not found for event: {event}")

    def listeners(self, event: str) -> List[Handler]:
        return list(self._handlers.get(event, []))

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every handler of `event` with `args`, in registration order.

        A failing handler is logged and does not stop the others.

        Returns:
            True if at least one handler was registered.
        """
        handlers = self.listeners(event)
        for handler in handlers:
            try:
                handler(*args)
            except Exception as e:
                logger.error(
                    f"[EVENT] Handler for '{event}' failed: {e}", exc_info=True
                )
        return bool(handlers)

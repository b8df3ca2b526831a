"""EventBus: observer channel between tools and their front-ends."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

EventHandler = Callable[..., None]

# Event names emitted by the bundled tools.
PROGRESS = "progress"
LOG = "log"
COMPLETED = "completed"


class EventBus:
    """Publish/subscribe bus used by tools to report progress.

    Tools emit ``progress``, ``log`` and ``completed`` events with keyword
    payloads; the CLI (or any embedding application) subscribes to the ones
    it wants to display.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Register *handler* to be called with the keyword payload of *event*."""
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        """Remove a previously registered handler.

        Removing a handler that was never registered only logs a warning.
        """
        try:
            self._handlers[event].remove(handler)
        except ValueError:
            logger.warning("Handler %r was not subscribed to event %r", handler, event)

    def has_subscribers(self, event: str) -> bool:
        """Return True if at least one handler listens to *event*."""
        return bool(self._handlers.get(event))

    def emit(self, event: str, **kwargs: Any) -> None:
        """Call every handler of *event*.

        A failing handler is logged and does not stop the remaining ones.

        Args:
            event: The event name to fire.
            **kwargs: Payload passed to each handler.
        """
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(**kwargs)
            except Exception:
                logger.exception("Error in handler %r for event %r", handler, event)

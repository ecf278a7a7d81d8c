"""
Event bus for cross-component refresh notifications
(e.g. the applied-loans list reloading after an application is made).
"""

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)


RECOMMENDATIONS_UPDATED = "recommendations_updated"
APPLIED_LOANS_UPDATED = "applied_loans_updated"
PROFILE_UPDATED = "profile_updated"


class EventBus:
    """Synchronous publish/subscribe keyed by event name."""

    def __init__(self):
        self._handlers = defaultdict(list)

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> Callable[[], None]:
        """Register handler; returns a function that removes it again."""
        self._handlers[event].append(handler)

        def unsubscribe():
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return unsubscribe

    def publish(self, event: str, payload: Any = None) -> int:
        """Call every handler for event. Returns how many ran without error."""
        called = 0
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(payload)
                called += 1
            except Exception:
                logger.exception("Handler for %r failed", event)
        return called

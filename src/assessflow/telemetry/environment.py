"""
Host environment events.

The host (browser shell, kiosk app, test harness) pushes focus, blur and
visibility changes here; interaction loggers subscribe for the lifetime
of a question session.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Literal

logger = logging.getLogger(__name__)

EnvironmentEvent = Literal["focus", "blur", "visibilitychange"]

Listener = Callable[[dict[str, Any]], None]


class EnvironmentEvents:
    """Minimal event source for host focus/visibility changes."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def add_listener(self, event: EnvironmentEvent, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def remove_listener(self, event: EnvironmentEvent, listener: Listener) -> None:
        """Remove a listener. Removing an unknown listener is a no-op."""
        try:
            self._listeners[event].remove(listener)
        except ValueError:
            logger.debug(f"Listener for '{event}' was not registered")

    def listener_count(self, event: EnvironmentEvent | None = None) -> int:
        if event is not None:
            return len(self._listeners[event])
        return sum(len(listeners) for listeners in self._listeners.values())

    def emit(self, event: EnvironmentEvent, **detail: Any) -> None:
        """Deliver an event to every current listener.

        Args:
            event: Event name
            **detail: Event detail (e.g. hidden=True for visibilitychange)
        """
        for listener in list(self._listeners[event]):
            listener(detail)

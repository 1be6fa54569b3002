"""
Interaction Logger

Append-only capture of timestamped raw events for one question session.
The log is the canonical record of what happened; entries are frozen and
never removed or reordered.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from assessflow.core.schemas.analytics import LogEntry, LogEventType
from assessflow.telemetry.environment import EnvironmentEvents

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class InteractionLogger:
    """Collects raw interaction events for a single session.

    Usage:
        interaction_log = InteractionLogger()
        with interaction_log.capture(environment):
            interaction_log.log("select_option", {"option_id": "A"})
        entries = interaction_log.get_all()
    """

    def __init__(self, clock: Clock | None = None):
        """Initialize logger.

        Args:
            clock: Millisecond clock (defaults to wall clock). Injected in tests.
        """
        self._clock = clock or now_ms
        self._entries: list[LogEntry] = []
        self._capturing = False

    def log(self, type: LogEventType, payload: Any = None) -> LogEntry:
        """Append one event stamped with the current time."""
        entry = LogEntry(type=type, payload=payload, timestamp=self._clock())
        self._entries.append(entry)
        return entry

    def get_all(self) -> tuple[LogEntry, ...]:
        """Return all entries in append order."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def is_capturing(self) -> bool:
        return self._capturing

    @contextmanager
    def capture(self, environment: EnvironmentEvents | None = None) -> Iterator[InteractionLogger]:
        """Scope environment capture to a session.

        Logs `mount`, subscribes to focus/blur/visibility events, and
        always removes the subscriptions on exit, including when the
        session is abandoned by an exception.
        """
        if self._capturing:
            raise RuntimeError("InteractionLogger is already capturing")

        def on_focus(detail: dict[str, Any]) -> None:
            self.log("focus", detail or None)

        def on_blur(detail: dict[str, Any]) -> None:
            self.log("blur", detail or None)

        def on_visibility(detail: dict[str, Any]) -> None:
            if detail.get("hidden"):
                self.log("blur", {"reason": "visibility_hidden"})
            else:
                self.log("focus", {"reason": "visibility_visible"})

        self._capturing = True
        self.log("mount")
        if environment is not None:
            environment.add_listener("focus", on_focus)
            environment.add_listener("blur", on_blur)
            environment.add_listener("visibilitychange", on_visibility)
        try:
            yield self
        finally:
            if environment is not None:
                environment.remove_listener("focus", on_focus)
                environment.remove_listener("blur", on_blur)
                environment.remove_listener("visibilitychange", on_visibility)
            self._capturing = False
            logger.debug(f"Interaction capture ended after {len(self._entries)} events")

"""Multi-producer, single-consumer channel for operator status events.

The worker thread and the pipelines report progress through ``Reporter``
handles; a single ``LogRenderer`` on the main thread consumes the events and
repaints the terminal. Sending never blocks on rendering.

Example:
    >>> bus = LogBus()
    >>> reporter = bus.reporter()
    >>> reporter.in_progress("Measuring B+...")
    >>> reporter.success("B+: 4.12V")
    >>> renderer = bus.renderer()
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING, Any, TextIO

from paneltest_core.errors import StateError
from paneltest_core.types.events import FillColor, LogEvent

if TYPE_CHECKING:
    from paneltest_logbus.renderer import LogRenderer

logger = logging.getLogger(__name__)

# Queued after the last event to stop the renderer loop.
CLOSE = object()


class Reporter:
    """Producer handle for the log bus.

    Cheap to create and safe to use from any thread.
    """

    def __init__(self, events: queue.Queue[Any]) -> None:
        self._events = events

    def send(self, event: LogEvent) -> None:
        """Enqueue a raw event."""
        self._events.put(event)

    def success(self, text: str) -> None:
        self.send(LogEvent.success(text))

    def error(self, text: str) -> None:
        self.send(LogEvent.error(text))

    def in_progress(self, text: str) -> None:
        self.send(LogEvent.in_progress(text))

    def action(self, text: str) -> None:
        self.send(LogEvent.action(text))

    def fill(self, color: FillColor) -> None:
        self.send(LogEvent.fill(color))

    def reset(self) -> None:
        self.send(LogEvent.reset())


class LogBus:
    """Owner of the event queue.

    Hands out any number of :class:`Reporter` handles and exactly one
    :class:`~paneltest_logbus.renderer.LogRenderer`.
    """

    def __init__(self) -> None:
        self._events: queue.Queue[Any] = queue.Queue()
        self._lock = threading.Lock()
        self._renderer_taken = False

    def reporter(self) -> Reporter:
        """Return a new producer handle."""
        return Reporter(self._events)

    def renderer(self, stream: TextIO | None = None) -> LogRenderer:
        """Return the single consumer for this bus.

        Args:
            stream: Output stream for drawing (defaults to stdout).

        Raises:
            StateError: If the renderer has already been taken.
        """
        # Deferred: the renderer module imports CLOSE from here.
        from paneltest_logbus.renderer import LogRenderer  # pylint: disable=import-outside-toplevel

        with self._lock:
            if self._renderer_taken:
                raise StateError("LogBus renderer already taken")
            self._renderer_taken = True
        return LogRenderer(self._events, stream=stream)

    def close(self) -> None:
        """Stop the renderer once it has drawn every event sent so far."""
        logger.debug("Closing log bus")
        self._events.put(CLOSE)

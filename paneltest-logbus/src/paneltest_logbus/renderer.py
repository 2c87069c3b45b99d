"""Terminal renderer for the log bus.

The renderer keeps an ordered history of status events. A transient
"in progress" line is replaced by whatever event comes next, a RESET clears
the history, and a FILL paints the rest of the screen in the verdict color so
the operator can read the result from across the bench.
"""

from __future__ import annotations

import logging
import queue
import shutil
import sys
from collections.abc import Sequence
from typing import Any, TextIO

from colorama import Back, Cursor, Fore, Style
from colorama.ansi import clear_screen

from paneltest_core.types.events import EventKind, FillColor, LogEvent
from paneltest_logbus.bus import CLOSE

logger = logging.getLogger(__name__)

SUCCESS_PREFIX = "✓ "
ERROR_PREFIX = "╳ "

# kind -> (color, prefix); FILL and RESET draw no text
_TEXT_STYLES = {
    EventKind.SUCCESS: (Fore.GREEN, SUCCESS_PREFIX),
    EventKind.ERROR: (Fore.RED, ERROR_PREFIX),
    EventKind.IN_PROGRESS: (Fore.WHITE, ""),
    EventKind.ACTION: (Fore.LIGHTBLUE_EX, ""),
}

_FILL_COLORS = {
    FillColor.GREEN: Fore.GREEN + Back.GREEN,
    FillColor.RED: Fore.RED + Back.RED,
}


def render_lines(events: Sequence[LogEvent], columns: int, rows: int) -> list[str]:
    """Render an event history into colored terminal lines.

    Success lines are marked with a check and errors with a cross. Multi-line
    texts are split, long lines are cut at ``columns`` and only the newest
    ``rows`` lines are kept. If the last event is a FILL, the rows left below
    the text are filled with full-width bars of the fill color.

    Args:
        events: Event history, oldest first.
        columns: Terminal width.
        rows: Terminal height.

    Returns:
        Lines ready to be written, without trailing newlines.
    """
    lines: list[str] = []
    for event in events:
        style = _TEXT_STYLES.get(event.kind)
        if style is None:
            continue
        color, prefix = style
        for text in (prefix + event.text).splitlines() or [""]:
            lines.append(f"{color}{text[:columns]}{Style.RESET_ALL}")

    lines = lines[-rows:] if rows > 0 else []

    last = events[-1] if events else None
    if last is not None and last.kind is EventKind.FILL and last.color is not None:
        bar = f"{_FILL_COLORS[last.color]}{'X' * columns}{Style.RESET_ALL}"
        lines.extend([bar] * max(rows - len(lines), 0))

    return lines


class LogRenderer:
    """Single consumer of a :class:`~paneltest_logbus.bus.LogBus`.

    Obtain one with ``LogBus.renderer()``.

    Attributes:
        stream: Where :meth:`draw` writes.
    """

    def __init__(self, events: queue.Queue[Any], stream: TextIO | None = None) -> None:
        self._queue = events
        self._history: list[LogEvent] = []
        self.stream = stream if stream is not None else sys.stdout

    @property
    def events(self) -> tuple[LogEvent, ...]:
        """Return a snapshot of the current history."""
        return tuple(self._history)

    def apply(self, event: LogEvent) -> None:
        """Apply one event to the history.

        A trailing "in progress" event is replaced by the next event of any
        kind, so at most one transient line is ever visible.
        """
        if event.kind is EventKind.RESET:
            self._history.clear()
            return

        if self._history and self._history[-1].is_in_progress:
            self._history.pop()
        self._history.append(event)

    def run(self) -> None:
        """Consume and draw events until the bus is closed.

        Events that are already queued are applied together before a redraw.
        """
        while True:
            item = self._queue.get()
            if item is CLOSE:
                return
            self.apply(item)

            while True:
                try:
                    item = self._queue.get_nowait()
                except queue.Empty:
                    break
                if item is CLOSE:
                    self.draw()
                    return
                self.apply(item)

            self.draw()

    def draw(self) -> None:
        """Clear the terminal and repaint the history."""
        size = shutil.get_terminal_size()
        lines = render_lines(self._history, size.columns, size.lines)
        self.stream.write(clear_screen() + Cursor.POS(1, 1) + "\n".join(lines))
        self.stream.flush()

"""Operator status channel: reporters, bus and terminal renderer."""

from paneltest_logbus.bus import LogBus, Reporter
from paneltest_logbus.renderer import ERROR_PREFIX, SUCCESS_PREFIX, LogRenderer, render_lines

__all__ = [
    "ERROR_PREFIX",
    "LogBus",
    "LogRenderer",
    "Reporter",
    "SUCCESS_PREFIX",
    "render_lines",
]

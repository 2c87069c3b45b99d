"""Operator status events carried by the log bus."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EventKind(Enum):
    """Kind of a status event."""

    SUCCESS = "success"
    ERROR = "error"
    IN_PROGRESS = "in_progress"
    ACTION = "action"
    FILL = "fill"
    RESET = "reset"


class FillColor(Enum):
    """Full-screen wash colors used for the board verdict."""

    GREEN = "green"
    RED = "red"


@dataclass(frozen=True)
class LogEvent:
    """A single human-readable status update.

    Attributes:
        kind: What the event means to the renderer.
        text: Message text (empty for FILL and RESET).
        color: Wash color, only set for FILL.
    """

    kind: EventKind
    text: str = ""
    color: FillColor | None = None

    @classmethod
    def success(cls, text: str) -> LogEvent:
        return cls(EventKind.SUCCESS, text)

    @classmethod
    def error(cls, text: str) -> LogEvent:
        return cls(EventKind.ERROR, text)

    @classmethod
    def in_progress(cls, text: str) -> LogEvent:
        return cls(EventKind.IN_PROGRESS, text)

    @classmethod
    def action(cls, text: str) -> LogEvent:
        return cls(EventKind.ACTION, text)

    @classmethod
    def fill(cls, color: FillColor) -> LogEvent:
        return cls(EventKind.FILL, color=color)

    @classmethod
    def reset(cls) -> LogEvent:
        return cls(EventKind.RESET)

    @property
    def is_in_progress(self) -> bool:
        """Return True for transient "in progress" events."""
        return self.kind is EventKind.IN_PROGRESS

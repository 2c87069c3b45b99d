"""Data types shared by every paneltest package."""

from paneltest_core.types.board import (
    Board,
    Failed,
    Passed,
    TestOutcome,
    TestStepRecord,
    UploadFailureRecord,
)
from paneltest_core.types.bounds import (
    AnyValue,
    BoundCheck,
    GoodInterval,
    GreaterThan,
    LessThan,
    bound_check_from_dict,
)
from paneltest_core.types.common import BoardId, ChannelId, Timestamp
from paneltest_core.types.events import EventKind, FillColor, LogEvent

__all__ = [
    # Common
    "BoardId",
    "ChannelId",
    "Timestamp",
    # Board
    "Board",
    "Failed",
    "Passed",
    "TestOutcome",
    "TestStepRecord",
    "UploadFailureRecord",
    # Bounds
    "AnyValue",
    "BoundCheck",
    "GoodInterval",
    "GreaterThan",
    "LessThan",
    "bound_check_from_dict",
    # Events
    "EventKind",
    "FillColor",
    "LogEvent",
]

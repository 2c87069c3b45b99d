"""Core library for the paneltest manufacturing tester.

This package holds the pieces every other paneltest package builds on:
the board audit trail types, operator status events, acceptance bound
checks, the error hierarchy, the collaborator protocols, and the stream
scanner used to turn device logs into pass/fail decisions.

Example:
    >>> from paneltest_core import Board, TestStepRecord, Timestamp
    >>> board = Board()
    >>> now = Timestamp.now()
    >>> board.add_step(TestStepRecord("Serial", "Serial should work", "true",
    ...                               None, False, now, now))
    >>> board.finish()
"""

from paneltest_core.errors import (
    ConfigError,
    DeviceIOError,
    PaneltestError,
    PatternMatchFailure,
    PersistenceError,
    ProcessExecutionError,
    SerialError,
    StateError,
    ThresholdError,
    UploadError,
)
from paneltest_core.scanner import scan_until
from paneltest_core.types import (
    AnyValue,
    Board,
    BoardId,
    BoundCheck,
    ChannelId,
    EventKind,
    Failed,
    FillColor,
    GoodInterval,
    GreaterThan,
    LessThan,
    LogEvent,
    Passed,
    TestOutcome,
    TestStepRecord,
    Timestamp,
    UploadFailureRecord,
    bound_check_from_dict,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Errors
    "ConfigError",
    "DeviceIOError",
    "PaneltestError",
    "PatternMatchFailure",
    "PersistenceError",
    "ProcessExecutionError",
    "SerialError",
    "StateError",
    "ThresholdError",
    "UploadError",
    # Scanner
    "scan_until",
    # Types
    "AnyValue",
    "Board",
    "BoardId",
    "BoundCheck",
    "ChannelId",
    "EventKind",
    "Failed",
    "FillColor",
    "GoodInterval",
    "GreaterThan",
    "LessThan",
    "LogEvent",
    "Passed",
    "TestOutcome",
    "TestStepRecord",
    "Timestamp",
    "UploadFailureRecord",
    "bound_check_from_dict",
]

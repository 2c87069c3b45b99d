"""Exception types for paneltest.

All paneltest exceptions inherit from PaneltestError, so the worker and
uploader loops can contain any framework error with a single except clause.

Exception hierarchy:
    PaneltestError (base)
    +-- DeviceIOError: GPIO or analog bus failures
    +-- ProcessExecutionError: External tool exited non-zero
    +-- SerialError: Serial open/read/write failure or timeout
    +-- PatternMatchFailure: Negative pattern hit or stream ended before a match
    +-- UploadError: Transport failure or non-success HTTP status
    +-- PersistenceError: Local failure file read/write failure
    +-- ConfigError: Invalid tester options or station file
    +-- StateError: Object used in an invalid state
    +-- ThresholdError: Invalid bound definition
"""

from __future__ import annotations


class PaneltestError(Exception):
    """Base exception for all paneltest errors."""


class DeviceIOError(PaneltestError):
    """Raised when a GPIO pin or the voltage ADC cannot be driven or read."""


class ProcessExecutionError(PaneltestError):
    """Raised when an external tool (esptool, pio) exits with a non-zero status.

    Attributes:
        command: The command line that was executed.
        returncode: Process exit status.
        output: Captured standard output of the tool.
    """

    def __init__(self, command: list[str], returncode: int, output: str) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"`{command[0]}` exited with non-zero exit code {returncode}: {output}"
        )


class SerialError(PaneltestError):
    """Raised when the serial channel cannot be opened, read, or written.

    A read that times out without returning data is also a SerialError.
    """


class PatternMatchFailure(PaneltestError):
    """Raised when a stream scan hits a negative pattern or the source fails.

    Attributes:
        log: Everything read from the stream so far, followed by the reason.
    """

    def __init__(self, log: str) -> None:
        self.log = log
        super().__init__(log)


class UploadError(PaneltestError):
    """Raised when a report could not be delivered to the collector."""


class PersistenceError(PaneltestError):
    """Raised when the local failure file cannot be written."""


class ConfigError(PaneltestError):
    """Raised for invalid environment options or station configuration."""


class StateError(PaneltestError):
    """Raised when an object is used in a state that does not allow it.

    For example, finishing a board twice or requesting a second renderer.
    """


class ThresholdError(PaneltestError):
    """Raised for invalid bound definitions in the station configuration."""

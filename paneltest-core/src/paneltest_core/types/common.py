"""Common types used across paneltest modules.

Type Aliases:
    BoardId: Identity of a board under test (MAC address or UUID).
    ChannelId: Identifies an input channel on the voltage ADC.

Classes:
    Timestamp: UTC timestamp with nanosecond precision.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import NewType

BoardId = NewType("BoardId", str)
"""Type alias for board identities (e.g., "AA:BB:CC:DD:EE:FF")."""

ChannelId = NewType("ChannelId", str)
"""Type alias for voltage ADC channel identifiers (e.g., "A2")."""

# Wall clock is read once; Timestamp.now() advances it with the monotonic clock
_WALL_ANCHOR_NS = time.time_ns()
_MONOTONIC_ANCHOR_NS = time.monotonic_ns()


@dataclass(frozen=True, order=True)
class Timestamp:
    """Timestamp with nanosecond precision.

    Timestamps are stored as nanoseconds since the Unix epoch
    (1970-01-01 00:00:00 UTC) and compare by that value.

    Attributes:
        unix_ns: Nanoseconds since Unix epoch.

    Example:
        >>> ts = Timestamp.now()
        >>> print(ts.to_iso())
    """

    unix_ns: int

    @classmethod
    def now(cls) -> Timestamp:
        """Create a timestamp for the current time.

        The value is the wall-clock time at import plus the monotonic time
        elapsed since, so successive timestamps never go backwards when the
        system clock is stepped.

        Returns:
            A new Timestamp with the current time.
        """
        return cls(unix_ns=_WALL_ANCHOR_NS + time.monotonic_ns() - _MONOTONIC_ANCHOR_NS)

    @classmethod
    def from_datetime(cls, dt: datetime) -> Timestamp:
        """Create a timestamp from a datetime object.

        Args:
            dt: A datetime object to convert. Naive datetimes are assumed
                to be in UTC.

        Returns:
            A new Timestamp corresponding to the given datetime.
        """
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delta = dt - datetime(1970, 1, 1, tzinfo=timezone.utc)
        unix_ns = (delta.days * 86_400 + delta.seconds) * 1_000_000_000
        return cls(unix_ns=unix_ns + delta.microseconds * 1_000)

    @classmethod
    def from_iso(cls, value: str) -> Timestamp:
        """Parse an ISO-8601 string produced by :meth:`to_iso`.

        Args:
            value: ISO-8601 timestamp, with "Z" or an explicit offset.

        Returns:
            The parsed Timestamp.

        Raises:
            ValueError: If the string is not a valid ISO-8601 timestamp.
        """
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return cls.from_datetime(datetime.fromisoformat(value))

    def to_datetime(self) -> datetime:
        """Convert to a timezone-aware datetime object in UTC."""
        return datetime.fromtimestamp(self.unix_ns / 1_000_000_000, tz=timezone.utc)

    def to_iso(self) -> str:
        """Return the timestamp as an ISO-8601 UTC string with a "Z" suffix.

        Microsecond precision is kept; nanoseconds are truncated.
        """
        seconds, rest_ns = divmod(self.unix_ns, 1_000_000_000)
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
        dt = dt.replace(microsecond=rest_ns // 1_000)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")

    @property
    def unix_seconds(self) -> float:
        """Return the timestamp as seconds since Unix epoch."""
        return self.unix_ns / 1_000_000_000

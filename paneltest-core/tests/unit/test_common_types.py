"""Tests for common types."""

from datetime import datetime, timezone

import pytest

from paneltest_core.types import common
from paneltest_core.types.common import Timestamp
from paneltest_core.types.events import EventKind, FillColor, LogEvent


class TestTimestamp:
    """Tests for Timestamp."""

    def test_now_is_recent(self) -> None:
        """Test now() returns a plausible current time."""
        assert Timestamp.now().unix_seconds > 1_600_000_000

    def test_now_ignores_wall_clock_steps(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test now() keeps increasing when the system clock is set back."""
        first = Timestamp.now()
        monkeypatch.setattr(common.time, "time_ns", lambda: 0)
        second = Timestamp.now()
        assert second >= first
        assert second.unix_seconds > 1_600_000_000

    def test_now_follows_monotonic_clock(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test now() advances by the monotonic time elapsed since the anchor."""
        monkeypatch.setattr(
            common.time, "monotonic_ns", lambda: common._MONOTONIC_ANCHOR_NS + 5_000_000_000
        )
        assert Timestamp.now().unix_ns == common._WALL_ANCHOR_NS + 5_000_000_000

    def test_ordering(self) -> None:
        """Test timestamps compare by value."""
        assert Timestamp(1) < Timestamp(2)
        assert Timestamp(5) == Timestamp(5)

    def test_from_datetime_naive_is_utc(self) -> None:
        """Test naive datetimes are interpreted as UTC."""
        naive = datetime(2024, 1, 2, 3, 4, 5, 678_000)
        aware = naive.replace(tzinfo=timezone.utc)
        assert Timestamp.from_datetime(naive) == Timestamp.from_datetime(aware)

    def test_to_iso(self) -> None:
        """Test ISO formatting with a Z suffix and microseconds."""
        ts = Timestamp.from_datetime(datetime(2024, 1, 2, 3, 4, 5, 678_000, tzinfo=timezone.utc))
        assert ts.to_iso() == "2024-01-02T03:04:05.678000Z"

    def test_to_iso_truncates_nanoseconds(self) -> None:
        """Test sub-microsecond precision is dropped."""
        assert Timestamp(1_999).to_iso() == "1970-01-01T00:00:00.000001Z"

    def test_from_iso_roundtrip(self) -> None:
        """Test from_iso parses to_iso output."""
        ts = Timestamp(1_704_164_645_678_901_000)
        assert Timestamp.from_iso(ts.to_iso()) == ts

    def test_from_iso_with_offset(self) -> None:
        """Test an explicit offset is honored."""
        ts = Timestamp.from_iso("2024-01-02T05:04:05+02:00")
        assert ts.to_iso() == "2024-01-02T03:04:05.000000Z"

    def test_from_iso_invalid(self) -> None:
        """Test invalid text raises ValueError."""
        with pytest.raises(ValueError):
            Timestamp.from_iso("yesterday")

    def test_to_datetime(self) -> None:
        """Test conversion to an aware datetime."""
        dt = Timestamp(0).to_datetime()
        assert dt == datetime(1970, 1, 1, tzinfo=timezone.utc)


class TestLogEvent:
    """Tests for LogEvent constructors."""

    def test_constructors(self) -> None:
        """Test each classmethod sets the right kind."""
        assert LogEvent.success("x") == LogEvent(EventKind.SUCCESS, "x")
        assert LogEvent.error("x").kind is EventKind.ERROR
        assert LogEvent.action("x").kind is EventKind.ACTION
        assert LogEvent.reset() == LogEvent(EventKind.RESET)

    def test_fill_color(self) -> None:
        """Test fill carries its color and no text."""
        event = LogEvent.fill(FillColor.RED)
        assert event.kind is EventKind.FILL
        assert event.color is FillColor.RED
        assert event.text == ""

    def test_is_in_progress(self) -> None:
        """Test only IN_PROGRESS events are transient."""
        assert LogEvent.in_progress("x").is_in_progress is True
        assert LogEvent.success("x").is_in_progress is False

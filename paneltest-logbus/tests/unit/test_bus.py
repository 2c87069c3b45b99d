"""Tests for the log bus and its renderer."""

from __future__ import annotations

import io
import threading

import pytest
from colorama import Back, Fore, Style

from paneltest_core.errors import StateError
from paneltest_core.types.events import EventKind, FillColor, LogEvent
from paneltest_logbus.bus import LogBus
from paneltest_logbus.renderer import render_lines


def drain(bus: LogBus) -> tuple[LogEvent, ...]:
    """Close the bus and return the renderer history after all events."""
    renderer = bus.renderer(stream=io.StringIO())
    bus.close()
    renderer.run()
    return renderer.events


class TestReporter:
    """Tests for Reporter event construction."""

    def test_success_and_error(self) -> None:
        """Test success and error events carry the plain text."""
        bus = LogBus()
        reporter = bus.reporter()
        reporter.success("Device connected")
        reporter.error("Board failed")
        assert drain(bus) == (
            LogEvent.success("Device connected"),
            LogEvent.error("Board failed"),
        )

    def test_action_and_fill(self) -> None:
        """Test action and fill events pass through unchanged."""
        bus = LogBus()
        reporter = bus.reporter()
        reporter.action("[ Please connect the device ]")
        reporter.fill(FillColor.GREEN)
        events = drain(bus)
        assert events[0] == LogEvent.action("[ Please connect the device ]")
        assert events[1].kind is EventKind.FILL
        assert events[1].color is FillColor.GREEN


class TestLogBus:
    """Tests for LogBus ownership rules."""

    def test_second_renderer_raises(self) -> None:
        """Test only one renderer can be taken."""
        bus = LogBus()
        bus.renderer()
        with pytest.raises(StateError, match="already taken"):
            bus.renderer()

    def test_many_producers(self) -> None:
        """Test events from several threads are all delivered."""
        bus = LogBus()

        def produce(index: int) -> None:
            reporter = bus.reporter()
            for n in range(50):
                reporter.action(f"{index}-{n}")

        threads = [threading.Thread(target=produce, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        events = drain(bus)
        assert len(events) == 200
        for index in range(4):
            mine = [e.text for e in events if e.text.startswith(f"{index}-")]
            assert mine == [f"{index}-{n}" for n in range(50)]

    def test_run_returns_after_close(self) -> None:
        """Test a renderer thread stops once the bus is closed."""
        bus = LogBus()
        renderer = bus.renderer(stream=io.StringIO())
        thread = threading.Thread(target=renderer.run)
        thread.start()
        bus.reporter().success("done")
        bus.close()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert renderer.events == (LogEvent.success("done"),)


class TestLogRendererApply:
    """Tests for LogRenderer history rules."""

    def test_in_progress_collapses(self) -> None:
        """Test consecutive progress lines collapse into the final result."""
        bus = LogBus()
        renderer = bus.renderer()
        renderer.apply(LogEvent.in_progress("a"))
        renderer.apply(LogEvent.in_progress("b"))
        renderer.apply(LogEvent.success("c"))
        assert renderer.events == (LogEvent.success("c"),)

    def test_results_are_kept(self) -> None:
        """Test results stay in the history while progress lines are replaced."""
        bus = LogBus()
        renderer = bus.renderer()
        renderer.apply(LogEvent.in_progress("Measuring B+..."))
        renderer.apply(LogEvent.success("B+: 4.1V"))
        renderer.apply(LogEvent.in_progress("Measuring 3V3..."))
        renderer.apply(LogEvent.error("3V3: 3.5V"))
        assert renderer.events == (
            LogEvent.success("B+: 4.1V"),
            LogEvent.error("3V3: 3.5V"),
        )

    def test_reset_clears(self) -> None:
        """Test RESET empties the history."""
        bus = LogBus()
        renderer = bus.renderer()
        renderer.apply(LogEvent.success("x"))
        renderer.apply(LogEvent.fill(FillColor.RED))
        renderer.apply(LogEvent.reset())
        assert renderer.events == ()

    def test_draw_writes_lines(self) -> None:
        """Test draw clears the screen and writes the history."""
        stream = io.StringIO()
        bus = LogBus()
        renderer = bus.renderer(stream=stream)
        renderer.apply(LogEvent.action("[ Please connect the device ]"))
        renderer.draw()
        assert "[ Please connect the device ]" in stream.getvalue()


class TestRenderLines:
    """Tests for the pure render function."""

    def test_colors(self) -> None:
        """Test each kind is drawn in its color with its marker."""
        lines = render_lines(
            [
                LogEvent.success("ok"),
                LogEvent.error("bad"),
                LogEvent.in_progress("busy"),
                LogEvent.action("act"),
            ],
            columns=80,
            rows=24,
        )
        assert lines == [
            f"{Fore.GREEN}✓ ok{Style.RESET_ALL}",
            f"{Fore.RED}╳ bad{Style.RESET_ALL}",
            f"{Fore.WHITE}busy{Style.RESET_ALL}",
            f"{Fore.LIGHTBLUE_EX}act{Style.RESET_ALL}",
        ]

    def test_fill_paints_remaining_rows(self) -> None:
        """Test a trailing FILL adds full-width bars below the text."""
        lines = render_lines(
            [LogEvent.action("done"), LogEvent.fill(FillColor.GREEN)],
            columns=4,
            rows=3,
        )
        bar = f"{Fore.GREEN}{Back.GREEN}XXXX{Style.RESET_ALL}"
        assert lines == [f"{Fore.LIGHTBLUE_EX}done{Style.RESET_ALL}", bar, bar]

    def test_fill_not_last_is_ignored(self) -> None:
        """Test a FILL followed by more text does not paint."""
        lines = render_lines(
            [LogEvent.fill(FillColor.RED), LogEvent.action("next")],
            columns=10,
            rows=5,
        )
        assert len(lines) == 1

    def test_multiline_text_and_scrolling(self) -> None:
        """Test multi-line texts are split and only the newest rows are kept."""
        lines = render_lines([LogEvent.error("a\nb\nc")], columns=10, rows=2)
        assert lines == [f"{Fore.RED}b{Style.RESET_ALL}", f"{Fore.RED}c{Style.RESET_ALL}"]

    def test_empty(self) -> None:
        """Test no events draw nothing."""
        assert render_lines([], columns=80, rows=24) == []

"""The test worker: one board at a time, forever."""

from __future__ import annotations

import logging
import threading

from paneltest_core.types.board import TestOutcome
from paneltest_core.types.events import FillColor
from paneltest_logbus.bus import Reporter
from paneltest_outbox.outbox import ReportOutbox
from paneltest_pipeline.pipeline import TestPipeline

logger = logging.getLogger(__name__)

CONNECT_PROMPT = "[ Please connect the device ]"
DISCONNECT_PROMPT = "[ Please disconnect the device ]"


class TestWorker:
    """Drives the operator loop around a pipeline.

    Each cycle prompts for a board, runs the pipeline, hands the finished
    board to the outbox, shows a full-screen pass/fail color and waits for the
    board to be removed. The worker never touches a board after enqueueing it.
    """

    __test__ = False

    def __init__(self, pipeline: TestPipeline, reporter: Reporter, outbox: ReportOutbox) -> None:
        self._pipeline = pipeline
        self._reporter = reporter
        self._outbox = outbox
        self._stop_event = threading.Event()
        self._boards_tested = 0

    @property
    def boards_tested(self) -> int:
        """Return the number of completed boards."""
        return self._boards_tested

    def run_once(self) -> TestOutcome:
        """Test one board, from the connect prompt to its removal."""
        self._reporter.action(CONNECT_PROMPT)
        self._pipeline.wait_for_device_connect()
        self._reporter.success("Device connected")

        outcome = self._pipeline.run()
        board = outcome.board
        if outcome.passed:
            logger.info("Board %s passed", board.id)
            self._reporter.success("Board passed")
        else:
            failed = board.failed_step
            logger.info("Board %s failed at %s", board.id, failed.step if failed else "?")
            self._reporter.error("Board failed")

        self._outbox.enqueue(board)
        self._boards_tested += 1

        self._reporter.action(DISCONNECT_PROMPT)
        self._reporter.fill(FillColor.GREEN if outcome.passed else FillColor.RED)
        self._pipeline.wait_for_device_disconnect()
        self._reporter.reset()
        return outcome

    def run_forever(self) -> None:
        """Test boards until :meth:`stop` is called.

        An unexpected error in one cycle is logged and the loop moves on to
        the next board.
        """
        logger.info("Test worker started")
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:  # pylint: disable=broad-except
                logger.exception("Test cycle failed: %s", e)
                self._reporter.error(f"Tester error: {e}")
                self._stop_event.wait(1.0)
        logger.info("Test worker stopped after %d board(s)", self._boards_tested)

    def stop(self) -> None:
        """Ask :meth:`run_forever` to return after the current board."""
        self._stop_event.set()

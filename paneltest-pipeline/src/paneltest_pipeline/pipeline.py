"""Test pipeline base class."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Callable

from paneltest_core.interfaces.hardware import DevicePresence
from paneltest_core.types.board import Board, Failed, Passed, TestOutcome
from paneltest_logbus.bus import Reporter

from paneltest_pipeline.context import BoardContext
from paneltest_pipeline.step import PipelineStep

logger = logging.getLogger(__name__)

Sleep = Callable[[float], None]


def wait_until_present(
    presence: DevicePresence,
    vendor_id: int,
    product_id: int,
    poll_interval: float = 1.0,
    sleep: Sleep = time.sleep,
) -> None:
    """Block until a USB device with the given ids is enumerated."""
    while not presence.is_present(vendor_id, product_id):
        sleep(poll_interval)
    logger.info("Device %04x:%04x connected", vendor_id, product_id)


def wait_until_absent(
    presence: DevicePresence,
    vendor_id: int,
    product_id: int,
    poll_interval: float = 1.0,
    sleep: Sleep = time.sleep,
) -> None:
    """Block until no USB device with the given ids is enumerated."""
    while presence.is_present(vendor_id, product_id):
        sleep(poll_interval)
    logger.info("Device %04x:%04x disconnected", vendor_id, product_id)


class TestPipeline(ABC):
    """Base class for board test pipelines.

    Subclasses provide the ordered steps and the device presence handling
    for one board variant. :meth:`run` executes the steps fail-fast: the
    first failed record finishes the board and returns ``Failed``.

    Example:
        class LedBoardPipeline(TestPipeline):
            def wait_for_device_connect(self) -> None:
                ...

            def wait_for_device_disconnect(self) -> None:
                ...

            def steps(self) -> Sequence[PipelineStep]:
                return [PipelineStep("LED", "LED should light", self._check_led)]
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        reporter: Reporter,
        settle_delay: float = 0.0,
        sleep: Sleep = time.sleep,
    ) -> None:
        """Initialize the pipeline.

        Args:
            reporter: Log bus handle for operator feedback.
            settle_delay: Seconds to wait after connect before the first step.
            sleep: Sleep function, injectable for tests.
        """
        self._reporter = reporter
        self._settle_delay = settle_delay
        self._sleep = sleep

    @property
    def reporter(self) -> Reporter:
        """Return the log bus handle."""
        return self._reporter

    @abstractmethod
    def wait_for_device_connect(self) -> None:
        """Block until a board is attached."""

    @abstractmethod
    def wait_for_device_disconnect(self) -> None:
        """Block until the board is removed."""

    @abstractmethod
    def steps(self) -> Sequence[PipelineStep]:
        """Return the ordered steps for one board."""

    def new_board(self) -> Board:
        """Create the board record for a new run."""
        return Board()

    def run(self) -> TestOutcome:
        """Test the attached board.

        Returns:
            ``Passed`` if every step passed, otherwise ``Failed`` holding the
            records up to and including the failed step.
        """
        context = BoardContext(board=self.new_board(), reporter=self._reporter)
        board = context.board
        try:
            if self._settle_delay > 0:
                self._sleep(self._settle_delay)

            for step in self.steps():
                record = step.execute(context)
                if record.failed:
                    board.finish()
                    logger.info("Board %s failed at step %s", board.id, step.name)
                    return Failed(board)

            board.finish()
            logger.info("Board %s passed", board.id)
            return Passed(board)
        finally:
            context.close_resources()

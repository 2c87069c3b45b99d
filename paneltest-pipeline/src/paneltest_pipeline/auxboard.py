"""Sensor add-on board test pipeline.

Add-on boards carry only the IMU. They are tested over I2C from the station,
so there is no USB device to watch: a successful sensor initialization is
what tells the pipeline a board has been plugged in.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence

from paneltest_core.interfaces.hardware import SensorLink
from paneltest_core.types.board import Board
from paneltest_core.types.common import BoardId
from paneltest_logbus.bus import Reporter

from paneltest_pipeline.context import BoardContext
from paneltest_pipeline.pipeline import Sleep, TestPipeline
from paneltest_pipeline.step import PipelineStep, StepOutcome

logger = logging.getLogger(__name__)


class AuxBoardPipeline(TestPipeline):
    """Pipeline for the IMU add-on board."""

    def __init__(
        self,
        reporter: Reporter,
        sensor: SensorLink,
        rotation_interval_ms: int = 5,
        message_window: float = 0.5,
        max_messages: int = 255,
        connect_retry_interval: float = 0.25,
        disconnect_delay: float = 2.0,
        settle_delay: float = 1.0,
        sleep: Sleep = time.sleep,
    ) -> None:
        """Initialize the pipeline.

        Args:
            reporter: Log bus handle for operator feedback.
            sensor: IMU driver.
            rotation_interval_ms: Rotation vector report interval.
            message_window: Seconds to let reports accumulate before handling them.
            max_messages: Upper bound on messages handled in one pass.
            connect_retry_interval: Seconds between initialization attempts while waiting.
            disconnect_delay: Fixed time given to the operator to swap boards.
            settle_delay: Seconds to wait after connect before testing.
            sleep: Sleep function, injectable for tests.
        """
        super().__init__(reporter, settle_delay=settle_delay, sleep=sleep)
        self._sensor = sensor
        self._rotation_interval_ms = rotation_interval_ms
        self._message_window = message_window
        self._max_messages = max_messages
        self._connect_retry_interval = connect_retry_interval
        self._disconnect_delay = disconnect_delay

    def wait_for_device_connect(self) -> None:
        attempts = 0
        while True:
            attempts += 1
            try:
                self._sensor.initialize()
            except Exception as e:  # pylint: disable=broad-except
                logger.debug("Sensor not ready (attempt %d): %s", attempts, e)
                self._sleep(self._connect_retry_interval)
                continue
            logger.info("Sensor responded after %d attempt(s)", attempts)
            return

    def wait_for_device_disconnect(self) -> None:
        # The I2C bus gives no removal signal
        self._sleep(self._disconnect_delay)

    def new_board(self) -> Board:
        """Create a board with a random id, since add-on boards have none."""
        return Board(id=BoardId(str(uuid.uuid4())))

    def steps(self) -> Sequence[PipelineStep]:
        return [
            PipelineStep(
                name="Init",
                condition="should be successful",
                action=self._initialize,
                progress="Initializing BNO080...",
            ),
            PipelineStep(
                name="Rotation vector",
                condition="should be enabled",
                action=self._enable_rotation_vector,
                progress="Enabling rotation vector...",
            ),
            PipelineStep(
                name="Handling messages",
                condition="should process messages",
                action=self._handle_messages,
                progress="Handling messages...",
            ),
            PipelineStep(
                name="Quaternion",
                condition="should be valid",
                action=self._read_quaternion,
                progress="Reading rotation quaternion...",
            ),
        ]

    def _initialize(self, context: BoardContext) -> StepOutcome:
        self._sensor.initialize()
        return StepOutcome(value="true", message="BNO080 initialized successfully")

    def _enable_rotation_vector(self, context: BoardContext) -> StepOutcome:
        self._sensor.enable_rotation_vector(self._rotation_interval_ms)
        return StepOutcome(value="true", message="Rotation vector enabled successfully")

    def _handle_messages(self, context: BoardContext) -> StepOutcome:
        self._sleep(self._message_window)
        count = self._sensor.handle_messages(self._max_messages)
        return StepOutcome(
            value=str(count),
            failed=count == 0,
            message=f"Processed {count} messages",
        )

    def _read_quaternion(self, context: BoardContext) -> StepOutcome:
        quaternion = self._sensor.rotation_quaternion()
        # All zeros means the sensor never produced a fused orientation
        valid = any(component != 0.0 for component in quaternion)
        return StepOutcome(
            value="true" if valid else "false",
            log=repr(tuple(quaternion)),
            failed=not valid,
            message=f"Quaternion: {tuple(quaternion)}",
        )

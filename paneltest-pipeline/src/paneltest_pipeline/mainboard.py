"""Main board test pipeline.

The main board carries the ESP8266 MCU, the power circuit and the IMU
connector. The pipeline checks the power rails, reads the MAC address, flashes
the tracker firmware and then uses the serial console to confirm that the
firmware finds the IMU and receives data from it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable

from paneltest_core.errors import PaneltestError, PatternMatchFailure
from paneltest_core.interfaces.hardware import (
    DeviceControl,
    DevicePresence,
    FirmwareFlasher,
    IdentityReader,
    SerialChannel,
    VoltageSource,
)
from paneltest_core.scanner import scan_until
from paneltest_core.types.bounds import AnyValue, BoundCheck, GoodInterval, GreaterThan
from paneltest_core.types.common import BoardId, ChannelId
from paneltest_logbus.bus import Reporter

from paneltest_pipeline.context import BoardContext
from paneltest_pipeline.pipeline import Sleep, TestPipeline, wait_until_absent, wait_until_present
from paneltest_pipeline.step import PipelineStep, StepOutcome

logger = logging.getLogger(__name__)

# CH340 USB-serial bridge on the main board
USB_VENDOR_ID = 0x1A86
USB_PRODUCT_ID = 0x7523

SERIAL_RESOURCE = "serial"

IMU_CONNECTED = "[INFO ] [BNO080Sensor:0] Connected to BNO085 on 0x4a"
IMU_BOOT_ERRORS = ("ERR", "[FATAL")
IMU_TEST_COMMAND = b"GET TEST\n"
IMU_TEST_PASSED = "Sensor 1 sent some data, looks working."
IMU_TEST_FAILED = "Sensor 1 didn't send any data yet!"


@dataclass(frozen=True)
class VoltageRail:
    """A power rail measured on the voltage ADC.

    Attributes:
        name: Rail label (e.g., "B+").
        channel: ADC channel the rail is wired to.
        bound: Acceptance bound for the measured voltage.
        gates: If False, the reading is recorded but never fails the board.
    """

    name: str
    channel: ChannelId
    bound: BoundCheck
    gates: bool = True


DEFAULT_RAILS: tuple[VoltageRail, ...] = (
    VoltageRail("VOUT", ChannelId("A2"), AnyValue(), gates=False),
    VoltageRail("B+", ChannelId("A3"), GreaterThan(4.0)),
    VoltageRail("3V3", ChannelId("A0"), GoodInterval(2.8, 3.2)),
)


@dataclass
class MainBoardHardware:
    """Station collaborators used by the main board pipeline.

    Attributes:
        presence: USB enumeration, used for connect/disconnect detection.
        voltages: Rail voltage ADC.
        device: Reset lines of the ESP.
        identity: MAC address reader.
        flasher: Firmware flashing backend.
        open_serial: Opens the serial console of the board.
    """

    presence: DevicePresence
    voltages: VoltageSource
    device: DeviceControl
    identity: IdentityReader
    flasher: FirmwareFlasher
    open_serial: Callable[[], SerialChannel]


class MainBoardPipeline(TestPipeline):
    """Pipeline for the ESP8266 main board."""

    def __init__(
        self,
        reporter: Reporter,
        hardware: MainBoardHardware,
        firmware_image: str,
        rails: Sequence[VoltageRail] = DEFAULT_RAILS,
        vendor_id: int = USB_VENDOR_ID,
        product_id: int = USB_PRODUCT_ID,
        poll_interval: float = 1.0,
        settle_delay: float = 0.25,
        command_delay: float = 0.1,
        sleep: Sleep = time.sleep,
    ) -> None:
        """Initialize the pipeline.

        Args:
            reporter: Log bus handle for operator feedback.
            hardware: Station collaborators.
            firmware_image: Image path (or build environment) passed to the flasher.
            rails: Power rails to measure, in order.
            vendor_id: USB vendor id of the board's serial bridge.
            product_id: USB product id of the board's serial bridge.
            poll_interval: Seconds between USB presence polls.
            settle_delay: Seconds to wait after connect before testing.
            command_delay: Seconds between the boot scan and the IMU test command.
            sleep: Sleep function, injectable for tests.
        """
        super().__init__(reporter, settle_delay=settle_delay, sleep=sleep)
        self._hw = hardware
        self._firmware_image = firmware_image
        self._rails = tuple(rails)
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._poll_interval = poll_interval
        self._command_delay = command_delay

    @property
    def rails(self) -> tuple[VoltageRail, ...]:
        """Return the configured power rails."""
        return self._rails

    def wait_for_device_connect(self) -> None:
        wait_until_present(
            self._hw.presence, self._vendor_id, self._product_id, self._poll_interval, self._sleep
        )

    def wait_for_device_disconnect(self) -> None:
        wait_until_absent(
            self._hw.presence, self._vendor_id, self._product_id, self._poll_interval, self._sleep
        )

    def steps(self) -> Sequence[PipelineStep]:
        gating = [r.bound.describe(r.name) for r in self._rails if r.gates]
        return [
            PipelineStep(
                name="Measure voltages",
                condition=", ".join(gating) or "none",
                action=self._measure_voltages,
                failure_hint="Faulty power circuit",
            ),
            PipelineStep(
                name="Read MAC address",
                condition="MAC address should be readable",
                action=self._read_mac_address,
                progress="Reading MAC address...",
                failure_hint="ESP8266 faulty",
            ),
            PipelineStep(
                name="Flashing",
                condition="Flashing should work",
                action=self._flash,
                progress="Flashing...",
                failure_hint="Flashing failed",
            ),
            PipelineStep(
                name="Serial",
                condition="Serial should work",
                action=self._open_serial,
                progress="Connecting to serial port...",
                failure_hint="Serial port failed",
            ),
            PipelineStep(
                name="I2C to IMU",
                condition="I2C to IMU should work",
                action=self._check_imu_connection,
                progress="Checking I2C connection to IMU...",
            ),
            PipelineStep(
                name="IMU test",
                condition="IMU test should work",
                action=self._run_imu_test,
                progress="Checking IMU via `GET TEST` command...",
            ),
        ]

    def _measure_voltages(self, context: BoardContext) -> StepOutcome:
        """Measure every rail before deciding, so one record shows all readings."""
        reporter = context.reporter
        readings: list[str] = []
        log_lines: list[str] = []
        failed = False

        for rail in self._rails:
            reporter.in_progress(f"Measuring {rail.name}...")
            condition = rail.bound.describe(rail.name)
            try:
                volts = self._hw.voltages.measure(rail.channel)
            except (PaneltestError, OSError) as e:
                logger.error("Failed to measure %s: %s", rail.name, e)
                readings.append(f"{rail.name}: N/A")
                log_lines.append(f"{rail.name}: err: {e}")
                reporter.error(f"{rail.name} voltage: {e}")
                failed = failed or rail.gates
                continue

            ok = rail.bound.check(volts)
            reading = f"{rail.name}: {volts:.3f}V"
            readings.append(reading)
            log_lines.append(f"{reading} ({condition}) {'ok' if ok else 'out of bounds'}")
            if ok:
                reporter.success(f"{rail.name} voltage: {volts:.3f}V")
            else:
                reporter.error(f"{rail.name} voltage: {volts:.3f}V ({condition})")
                failed = failed or rail.gates

        return StepOutcome(
            value=", ".join(readings),
            log="\n".join(log_lines),
            failed=failed,
            message="Voltages out of bounds" if failed else "Voltages OK",
        )

    def _read_mac_address(self, context: BoardContext) -> StepOutcome:
        mac, output = self._hw.identity.read_hardware_id()
        context.board.id = BoardId(mac)
        return StepOutcome(value=mac, log=output, message=f"Read MAC address: {mac}")

    def _flash(self, context: BoardContext) -> StepOutcome:
        output = self._hw.flasher.flash(self._firmware_image)
        return StepOutcome(value="true", log=output, message="Flashing successful")

    def _open_serial(self, context: BoardContext) -> StepOutcome:
        channel = self._hw.open_serial()
        context.set_resource(SERIAL_RESOURCE, channel)
        try:
            channel.clear_buffers()
        except (PaneltestError, OSError) as e:
            logger.warning("Failed to clear serial port: %s", e)
        return StepOutcome(value="true", message="Serial port opened")

    def _check_imu_connection(self, context: BoardContext) -> StepOutcome:
        channel: SerialChannel = context.get_resource(SERIAL_RESOURCE)
        self._hw.device.reset_no_delay()
        try:
            log = scan_until(channel, [IMU_CONNECTED], IMU_BOOT_ERRORS)
        except PatternMatchFailure as e:
            return StepOutcome(
                value="false",
                log=e.log,
                failed=True,
                message="I2C to IMU faulty: " + e.log.rsplit("\n", 1)[-1],
            )
        return StepOutcome(value="true", log=log, message="I2C to IMU working")

    def _run_imu_test(self, context: BoardContext) -> StepOutcome:
        channel: SerialChannel = context.get_resource(SERIAL_RESOURCE)
        self._sleep(self._command_delay)
        channel.write(IMU_TEST_COMMAND)
        try:
            log = scan_until(channel, [IMU_TEST_PASSED], [IMU_TEST_FAILED])
        except PatternMatchFailure as e:
            return StepOutcome(
                value="false",
                log=e.log,
                failed=True,
                message="IMU test failed: " + e.log.rsplit("\n", 1)[-1],
            )
        return StepOutcome(value="true", log=log, message="IMU test successful")

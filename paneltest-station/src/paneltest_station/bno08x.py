"""BNO08x IMU driver for the add-on board tester.

Add-on boards carry a BNO080/BNO085 that the station talks to directly over
the Raspberry Pi I2C bus, using the sensor hub transport protocol (SHTP).
Every SHTP packet starts with a four byte header:

- bytes 0-1: packet length including the header, little-endian; bit 15 marks
  a continuation
- byte 2: channel
- byte 3: sequence number, counted per channel by the sender

Whole packets can be longer than an SMBus block transfer, so reads and writes
go through raw ``i2c_rdwr`` messages. A read of the header tells how many
bytes to read next; the sensor then sends the header again, followed by the
payload.

Example:
    sensor = Bno08x(Bno08xConfig(address=ALTERNATE_ADDRESS))
    sensor.initialize()
    sensor.enable_rotation_vector(5)
    sensor.handle_messages(255)
    i, j, k, real = sensor.rotation_quaternion()
    sensor.close()
"""

from __future__ import annotations

import logging
import struct
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol

from paneltest_core.errors import DeviceIOError

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = 0x4B
ALTERNATE_ADDRESS = 0x4A

HEADER_LENGTH = 4
MAX_PACKET_LENGTH = 1024
ROTATION_VECTOR_LENGTH = 14
BASE_TIMESTAMP_LENGTH = 5
# Rotation vector components are fixed point with 14 fractional bits
QUATERNION_SCALE = 1.0 / (1 << 14)


class ShtpChannel(IntEnum):
    """SHTP channel numbers."""

    COMMAND = 0
    EXECUTABLE = 1
    CONTROL = 2
    REPORTS = 3
    WAKE_REPORTS = 4
    GYRO_ROTATION = 5


class ReportId(IntEnum):
    """SH-2 report ids used by the tester."""

    ROTATION_VECTOR = 0x05
    PRODUCT_ID_RESPONSE = 0xF8
    PRODUCT_ID_REQUEST = 0xF9
    BASE_TIMESTAMP = 0xFB
    SET_FEATURE = 0xFD


EXECUTABLE_RESET = 0x01


class Transport(Protocol):
    """Raw packet I/O with the sensor."""

    def read(self, length: int) -> bytes:
        """Read exactly ``length`` bytes."""

    def write(self, data: bytes) -> None:
        """Write one packet."""

    def close(self) -> None:
        """Release the underlying bus."""


def _import_smbus2() -> Any:
    try:
        import smbus2
    except ImportError as exc:
        raise ImportError(
            "smbus2 library is not installed. Install with: pip install smbus2"
        ) from exc
    return smbus2


class I2cTransport:
    """SHTP packet transport over a Linux I2C bus (smbus2 ``i2c_rdwr``)."""

    def __init__(self, i2c_bus: int, address: int, bus: Any = None) -> None:
        """Initialize the transport.

        Args:
            i2c_bus: I2C bus number.
            address: 7-bit sensor address.
            bus: Optional SMBus instance (smbus2 compatible), mainly for testing.
        """
        self._i2c_bus = i2c_bus
        self._address = address
        self._bus = bus

    def open(self) -> None:
        """Open the I2C bus.

        Raises:
            ImportError: If smbus2 is not available.
            DeviceIOError: If the bus cannot be opened.
        """
        if self._bus is not None:
            return
        smbus2 = _import_smbus2()
        try:
            self._bus = smbus2.SMBus(self._i2c_bus)
        except OSError as exc:
            raise DeviceIOError(f"Failed to open I2C bus {self._i2c_bus}: {exc}") from exc
        logger.debug("Opened BNO08x transport on bus %d at 0x%02X", self._i2c_bus, self._address)

    def close(self) -> None:
        """Close the I2C bus. Safe to call more than once."""
        if self._bus is None:
            return
        try:
            self._bus.close()
        except Exception:  # pylint: disable=broad-exception-caught
            pass
        self._bus = None

    def read(self, length: int) -> bytes:
        """Read ``length`` bytes in one I2C transaction.

        Raises:
            DeviceIOError: On a bus error, e.g. no sensor answering.
        """
        msg = _import_smbus2().i2c_msg.read(self._address, length)
        self._transfer(msg)
        return bytes(list(msg))

    def write(self, data: bytes) -> None:
        """Write ``data`` in one I2C transaction.

        Raises:
            DeviceIOError: On a bus error.
        """
        self._transfer(_import_smbus2().i2c_msg.write(self._address, data))

    def _transfer(self, msg: Any) -> None:
        if self._bus is None:
            self.open()
        try:
            self._bus.i2c_rdwr(msg)
        except OSError as exc:
            raise DeviceIOError(f"I2C error at 0x{self._address:02X}: {exc}") from exc


@dataclass(frozen=True)
class Bno08xConfig:
    """Configuration for the BNO08x.

    Attributes:
        i2c_bus: I2C bus number (1 on a Raspberry Pi).
        address: 7-bit I2C address (0x4A with SA0 low, 0x4B with SA0 high).
        reset_delay: Seconds to wait after a soft reset before reading.
        response_attempts: Reads to try while waiting for a product ID response.
        response_interval: Seconds between those reads.
    """

    i2c_bus: int = 1
    address: int = ALTERNATE_ADDRESS
    reset_delay: float = 0.05
    response_attempts: int = 20
    response_interval: float = 0.01

    def __post_init__(self) -> None:
        if self.address not in (ALTERNATE_ADDRESS, DEFAULT_ADDRESS):
            raise ValueError(f"address must be 0x4A or 0x4B, got 0x{self.address:02X}")
        if self.reset_delay < 0 or self.response_interval < 0:
            raise ValueError("delays must not be negative")
        if self.response_attempts < 1:
            raise ValueError("response_attempts must be at least 1")


class Bno08x:
    """BNO08x rotation vector reader.

    Implements the ``SensorLink`` protocol.
    """

    def __init__(
        self,
        config: Bno08xConfig | None = None,
        transport: Transport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the driver.

        Args:
            config: Device configuration. Uses defaults if None.
            transport: Packet transport. An :class:`I2cTransport` for the
                configured bus and address if None.
            sleep: Sleep function, injectable for tests.
        """
        self._config = config or Bno08xConfig()
        self._transport = transport or I2cTransport(self._config.i2c_bus, self._config.address)
        self._sleep = sleep
        self._sequence = [0] * len(ShtpChannel)
        self._quaternion: tuple[float, float, float, float] | None = None
        self._software_version: tuple[int, int] | None = None

    @property
    def config(self) -> Bno08xConfig:
        """Return the device configuration."""
        return self._config

    @property
    def software_version(self) -> tuple[int, int] | None:
        """Return the (major, minor) firmware version from the last product ID response."""
        return self._software_version

    def close(self) -> None:
        """Release the transport."""
        self._transport.close()

    def initialize(self) -> None:
        """Soft-reset the sensor and wait for it to answer a product ID request.

        Raises:
            DeviceIOError: If the sensor does not respond.
        """
        self._sequence = [0] * len(ShtpChannel)
        self._quaternion = None

        self._send(ShtpChannel.EXECUTABLE, bytes([EXECUTABLE_RESET]))
        self._sleep(self._config.reset_delay)
        # Advertisement and reset notification
        discarded = self.handle_messages(MAX_PACKET_LENGTH)
        logger.debug("Discarded %d packet(s) after reset", discarded)

        self._send(ShtpChannel.CONTROL, bytes([ReportId.PRODUCT_ID_REQUEST, 0]))
        for _ in range(self._config.response_attempts):
            packet = self._receive()
            if packet is None:
                self._sleep(self._config.response_interval)
                continue
            channel, payload = packet
            if channel == ShtpChannel.CONTROL and payload[:1] == bytes([ReportId.PRODUCT_ID_RESPONSE]):
                if len(payload) >= 4:
                    self._software_version = (payload[2], payload[3])
                logger.info("BNO08x answered, software version %s", self._software_version)
                return
            self._dispatch(channel, payload)

        raise DeviceIOError("BNO08x did not answer the product ID request")

    def enable_rotation_vector(self, interval_ms: int) -> None:
        """Ask for rotation vector reports every ``interval_ms`` milliseconds."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        command = struct.pack(
            "<BBBHIII",
            ReportId.SET_FEATURE,
            ReportId.ROTATION_VECTOR,
            0,  # feature flags
            0,  # change sensitivity
            interval_ms * 1000,
            0,  # batch interval
            0,  # sensor-specific configuration
        )
        self._send(ShtpChannel.CONTROL, command)

    def handle_messages(self, max_count: int) -> int:
        """Read and dispatch pending packets.

        Returns:
            Number of packets handled, at most ``max_count``.
        """
        count = 0
        while count < max_count:
            packet = self._receive()
            if packet is None:
                break
            self._dispatch(*packet)
            count += 1
        return count

    def rotation_quaternion(self) -> tuple[float, float, float, float]:
        """Return the latest rotation vector as (i, j, k, real).

        Raises:
            DeviceIOError: If no rotation vector report has been received.
        """
        if self._quaternion is None:
            raise DeviceIOError("No rotation vector report received")
        return self._quaternion

    def _send(self, channel: ShtpChannel, payload: bytes) -> None:
        header = struct.pack("<HBB", len(payload) + HEADER_LENGTH, channel, self._sequence[channel])
        self._sequence[channel] = (self._sequence[channel] + 1) & 0xFF
        self._transport.write(header + payload)

    def _receive(self) -> tuple[int, bytes] | None:
        header = self._transport.read(HEADER_LENGTH)
        length = (header[0] | (header[1] << 8)) & 0x7FFF
        if length <= HEADER_LENGTH:
            return None
        if length > MAX_PACKET_LENGTH:
            raise DeviceIOError(f"Invalid SHTP packet length: {length}")
        packet = self._transport.read(length)
        return packet[2], packet[HEADER_LENGTH:]

    def _dispatch(self, channel: int, payload: bytes) -> None:
        if channel in (ShtpChannel.REPORTS, ShtpChannel.WAKE_REPORTS):
            self._parse_input_reports(payload)

    def _parse_input_reports(self, payload: bytes) -> None:
        offset = 0
        if payload[:1] == bytes([ReportId.BASE_TIMESTAMP]):
            offset = BASE_TIMESTAMP_LENGTH
        while offset < len(payload):
            report_id = payload[offset]
            if report_id != ReportId.ROTATION_VECTOR:
                # Other report lengths are not tracked, so stop here
                logger.debug("Ignoring input report 0x%02X", report_id)
                return
            if offset + ROTATION_VECTOR_LENGTH > len(payload):
                logger.debug("Truncated rotation vector report")
                return
            i, j, k, real = struct.unpack_from("<hhhh", payload, offset + 4)
            self._quaternion = (
                i * QUATERNION_SCALE,
                j * QUATERNION_SCALE,
                k * QUATERNION_SCALE,
                real * QUATERNION_SCALE,
            )
            offset += ROTATION_VECTOR_LENGTH


def create_sensor(
    i2c_bus: int = 1, address: int = ALTERNATE_ADDRESS, **kwargs: Any
) -> Bno08x:
    """Create a BNO08x for the station's ``sensor.driver`` setting.

    The I2C bus is opened on first use.

    Args:
        i2c_bus: I2C bus number.
        address: 7-bit sensor address.
        **kwargs: Further :class:`Bno08xConfig` fields.
    """
    return Bno08x(Bno08xConfig(i2c_bus=i2c_bus, address=address, **kwargs))

"""Hardware collaborator interfaces consumed by the test pipelines.

These are structural (duck-typed) protocols. The real implementations live
in paneltest-station; unit tests pass small fakes.

Protocols:
    DevicePresence: USB device enumeration.
    VoltageSource: Rail voltage measurement.
    DeviceControl: Reset and boot-mode control of the board's MCU.
    IdentityReader: Hardware identity (MAC address) readout.
    FirmwareFlasher: Firmware programming backend.
    ByteSource: Anything that yields chunks of bytes.
    SerialChannel: Bidirectional serial link to the board.
    SensorLink: IMU link used by the add-on board pipeline.
"""

# pylint: disable=unnecessary-ellipsis  # Ellipsis required for Protocol method stubs

from __future__ import annotations

from typing import Protocol

from paneltest_core.types.common import ChannelId


class DevicePresence(Protocol):
    """Reports whether a USB device is currently attached."""

    def is_present(self, vendor_id: int, product_id: int) -> bool:
        """Return True if a device with the given USB ids is enumerated."""
        ...


class VoltageSource(Protocol):
    """Measures a voltage on an ADC channel."""

    def measure(self, channel: ChannelId) -> float:
        """Measure a channel.

        Args:
            channel: ADC channel identifier (e.g., "A2").

        Returns:
            The measured voltage in volts.

        Raises:
            DeviceIOError: On bus errors, timeouts, or an invalid channel.
        """
        ...


class DeviceControl(Protocol):
    """Reset lines of the microcontroller on the board under test."""

    def reset(self) -> None:
        """Pulse reset and wait for the device to come back up."""
        ...

    def reset_no_delay(self) -> None:
        """Pulse reset and return immediately, so boot output can be captured."""
        ...

    def reset_for_upload(self) -> None:
        """Reset into the serial bootloader."""
        ...


class IdentityReader(Protocol):
    """Reads the hardware identity used as the board id."""

    def read_hardware_id(self) -> tuple[str, str]:
        """Read the identity.

        Returns:
            Tuple of (identity, tool output).

        Raises:
            ProcessExecutionError: If the identity tool fails.
            DeviceIOError: If the identity cannot be found in the output.
        """
        ...


class FirmwareFlasher(Protocol):
    """Programs a firmware image onto the board."""

    def flash(self, image_path: str) -> str:
        """Flash an image.

        Args:
            image_path: Path of the firmware image or build environment.

        Returns:
            Tool output.

        Raises:
            ProcessExecutionError: If the flashing tool fails.
        """
        ...


class ByteSource(Protocol):
    """Blocking source of byte chunks."""

    def read(self) -> bytes:
        """Return the next 0..N bytes, or raise on an I/O error or timeout."""
        ...


class SerialChannel(Protocol):
    """Serial link to the board under test."""

    def read(self) -> bytes:
        """Read available bytes.

        Raises:
            SerialError: On read failure or when the read times out.
        """
        ...

    def write(self, data: bytes) -> None:
        """Write and flush bytes.

        Raises:
            SerialError: On write failure.
        """
        ...

    def clear_buffers(self) -> None:
        """Discard pending input and output."""
        ...

    def close(self) -> None:
        """Release the port."""
        ...


class SensorLink(Protocol):
    """IMU link on the add-on board tester."""

    def initialize(self) -> None:
        """Initialize the sensor. Raises on any failure."""
        ...

    def enable_rotation_vector(self, interval_ms: int) -> None:
        """Start streaming rotation vector reports."""
        ...

    def handle_messages(self, max_count: int) -> int:
        """Process pending sensor messages and return how many were handled."""
        ...

    def rotation_quaternion(self) -> tuple[float, float, float, float]:
        """Return the latest fused orientation as (i, j, k, real)."""
        ...

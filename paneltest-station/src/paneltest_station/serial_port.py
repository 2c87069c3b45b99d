"""Serial console of the board under test, on top of pyserial."""

from __future__ import annotations

import logging

import serial

from paneltest_core.errors import SerialError

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUDRATE = 115200
DEFAULT_TIMEOUT = 10.0

READ_CHUNK = 256


class PySerialChannel:
    """Implements ``SerialChannel`` (and ``ByteSource``) over a pyserial port.

    ``read`` blocks until at least one byte arrives, then returns whatever
    else is already buffered, up to 256 bytes. A read that returns nothing
    within the port timeout raises ``SerialError``.
    """

    def __init__(self, port: serial.Serial) -> None:
        self._port = port

    @property
    def name(self) -> str:
        """Return the device path."""
        return str(self._port.port)

    def read(self) -> bytes:
        try:
            data = self._port.read(1)
            if not data:
                raise SerialError(f"Read timed out on {self.name}")
            waiting = min(self._port.in_waiting, READ_CHUNK - 1)
            if waiting:
                data += self._port.read(waiting)
        except serial.SerialException as exc:
            raise SerialError(f"Could not read from serial port: {exc}") from exc
        return bytes(data)

    def write(self, data: bytes) -> None:
        try:
            self._port.write(data)
            self._port.flush()
        except serial.SerialException as exc:
            raise SerialError(f"Could not write to serial port: {exc}") from exc

    def clear_buffers(self) -> None:
        try:
            self._port.reset_input_buffer()
            self._port.reset_output_buffer()
        except serial.SerialException as exc:
            raise SerialError(f"Could not clear serial buffers: {exc}") from exc

    def close(self) -> None:
        self._port.close()
        logger.debug("Closed %s", self.name)

    def __enter__(self) -> PySerialChannel:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def open_serial_channel(
    port: str = DEFAULT_PORT,
    baudrate: int = DEFAULT_BAUDRATE,
    timeout: float = DEFAULT_TIMEOUT,
) -> PySerialChannel:
    """Open the board's serial console (8N1).

    Raises:
        SerialError: If the port cannot be opened.
    """
    try:
        handle = serial.Serial(
            port=port,
            baudrate=baudrate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=timeout,
        )
    except (serial.SerialException, ValueError) as exc:
        raise SerialError(f"Could not open serial port {port}: {exc}") from exc
    logger.debug("Opened %s at %d baud", port, baudrate)
    return PySerialChannel(handle)

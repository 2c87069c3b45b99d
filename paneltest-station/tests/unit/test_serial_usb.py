"""Unit tests for the serial console and USB presence detection."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import serial

from paneltest_core.errors import PatternMatchFailure, SerialError
from paneltest_core.scanner import scan_until
from paneltest_station import serial_port
from paneltest_station.serial_port import PySerialChannel, open_serial_channel
from paneltest_station.usb import UsbPresence


def _create_mock_port(*reads: bytes, in_waiting: int = 0) -> MagicMock:
    """Create a mock pyserial port returning the given reads."""
    mock = MagicMock()
    mock.port = "/dev/ttyUSB0"
    mock.read.side_effect = list(reads)
    mock.in_waiting = in_waiting
    return mock


class TestPySerialChannel:
    """Tests for PySerialChannel."""

    def test_read_returns_buffered_bytes(self) -> None:
        """After the first byte, everything already buffered is returned."""
        port = _create_mock_port(b"h", b"ello\n", in_waiting=5)
        assert PySerialChannel(port).read() == b"hello\n"
        port.read.assert_called_with(5)

    def test_read_is_capped(self) -> None:
        """A single read never returns more than 256 bytes."""
        port = _create_mock_port(b"x", b"y" * 255, in_waiting=4000)
        assert len(PySerialChannel(port).read()) == 256
        port.read.assert_called_with(255)

    def test_read_timeout(self) -> None:
        """An empty read after the timeout raises SerialError."""
        port = _create_mock_port(b"")
        with pytest.raises(SerialError, match="timed out"):
            PySerialChannel(port).read()

    def test_read_error(self) -> None:
        """pyserial failures become SerialError."""
        port = _create_mock_port()
        port.read.side_effect = serial.SerialException("device disconnected")
        with pytest.raises(SerialError, match="device disconnected"):
            PySerialChannel(port).read()

    def test_write_flushes(self) -> None:
        """write() flushes after writing."""
        port = _create_mock_port()
        PySerialChannel(port).write(b"GET TEST\n")
        port.write.assert_called_once_with(b"GET TEST\n")
        port.flush.assert_called_once()

    def test_clear_buffers(self) -> None:
        """clear_buffers() discards both directions."""
        port = _create_mock_port()
        PySerialChannel(port).clear_buffers()
        port.reset_input_buffer.assert_called_once()
        port.reset_output_buffer.assert_called_once()

    def test_scanner_over_serial(self) -> None:
        """A timeout ends a scan as a pattern match failure."""
        port = _create_mock_port(b"b", b"oot\n", b"", in_waiting=4)
        with pytest.raises(PatternMatchFailure) as excinfo:
            scan_until(PySerialChannel(port), ["Connected"], ["ERR"])
        assert excinfo.value.log.startswith("boot\n")
        assert "timed out" in excinfo.value.log


class TestOpenSerialChannel:
    """Tests for open_serial_channel()."""

    def test_open(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The port is opened 8N1 with the requested settings."""
        factory = MagicMock()
        monkeypatch.setattr(serial_port.serial, "Serial", factory)

        channel = open_serial_channel("/dev/ttyUSB3", 115200, 10.0)

        assert isinstance(channel, PySerialChannel)
        kwargs = factory.call_args.kwargs
        assert kwargs["port"] == "/dev/ttyUSB3"
        assert kwargs["baudrate"] == 115200
        assert kwargs["timeout"] == 10.0
        assert kwargs["bytesize"] == serial.EIGHTBITS

    def test_open_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A port that cannot be opened raises SerialError."""
        factory = MagicMock(side_effect=serial.SerialException("could not open port"))
        monkeypatch.setattr(serial_port.serial, "Serial", factory)
        with pytest.raises(SerialError, match="/dev/ttyUSB0"):
            open_serial_channel()


class TestUsbPresence:
    """Tests for UsbPresence."""

    PORTS = [
        SimpleNamespace(device="/dev/ttyAMA0", vid=None, pid=None),
        SimpleNamespace(device="/dev/ttyUSB0", vid=0x1A86, pid=0x7523),
    ]

    def test_present(self) -> None:
        """A matching port means the board is connected."""
        presence = UsbPresence(comports=lambda: self.PORTS)
        assert presence.is_present(0x1A86, 0x7523)
        assert presence.find_port(0x1A86, 0x7523) == "/dev/ttyUSB0"

    def test_absent(self) -> None:
        """No matching port means no board."""
        presence = UsbPresence(comports=lambda: self.PORTS)
        assert not presence.is_present(0x10C4, 0xEA60)
        assert presence.find_port(0x10C4, 0xEA60) is None

    def test_rescans_every_call(self) -> None:
        """Each call enumerates the ports again."""
        state: list = []
        presence = UsbPresence(comports=lambda: state)
        assert not presence.is_present(0x1A86, 0x7523)
        state.extend(self.PORTS)
        assert presence.is_present(0x1A86, 0x7523)

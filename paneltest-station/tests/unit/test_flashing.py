"""Unit tests for the esptool and PlatformIO wrappers."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from paneltest_core.errors import DeviceIOError, ProcessExecutionError
from paneltest_station import flashing
from paneltest_station.flashing import (
    EsptoolFlasher,
    EsptoolIdentityReader,
    PlatformioFlasher,
    build_firmware,
    parse_mac_address,
)
from paneltest_station.tools import NOT_STARTED, run_tool

READ_MAC_OUTPUT = """esptool.py v4.7.0
Serial port /dev/ttyUSB0
Connecting....
Chip is ESP8266EX
MAC: 84:f3:eb:12:34:56
Hard resetting via RTS pin...
"""


class ToolRecorder:
    """Replacement for run_tool that records calls."""

    def __init__(self, output: str = "", error: Exception | None = None) -> None:
        self.output = output
        self.error = error
        self.calls: list[tuple[list[str], object]] = []

    def __call__(self, args, cwd=None, timeout=None) -> str:
        self.calls.append((list(args), cwd))
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
def device() -> MagicMock:
    return MagicMock()


class TestParseMacAddress:
    """Tests for parse_mac_address()."""

    def test_parse(self) -> None:
        """The MAC address is taken from the first MAC line."""
        assert parse_mac_address(READ_MAC_OUTPUT) == "84:f3:eb:12:34:56"

    @pytest.mark.parametrize("output", ["", "Chip is ESP8266EX\n", "MAC: \n"])
    def test_missing(self, output: str) -> None:
        """Output without an address raises DeviceIOError."""
        with pytest.raises(DeviceIOError, match="No MAC address found"):
            parse_mac_address(output)


class TestEsptoolIdentityReader:
    """Tests for EsptoolIdentityReader."""

    def test_read(self, monkeypatch: pytest.MonkeyPatch, device: MagicMock) -> None:
        """read_mac runs between bootloader entry and reset."""
        tool = ToolRecorder(READ_MAC_OUTPUT)
        monkeypatch.setattr(flashing, "run_tool", tool)

        mac, output = EsptoolIdentityReader(device, port="/dev/ttyUSB1").read_hardware_id()

        assert mac == "84:f3:eb:12:34:56"
        assert output == READ_MAC_OUTPUT
        assert tool.calls == [(["esptool", "--port", "/dev/ttyUSB1", "read_mac"], None)]
        assert [c[0] for c in device.method_calls] == ["reset_for_upload", "reset"]

    def test_tool_failure_still_resets(
        self, monkeypatch: pytest.MonkeyPatch, device: MagicMock
    ) -> None:
        """The ESP is reset even when esptool fails."""
        error = ProcessExecutionError(["esptool"], 2, "Failed to connect")
        monkeypatch.setattr(flashing, "run_tool", ToolRecorder(error=error))

        with pytest.raises(ProcessExecutionError):
            EsptoolIdentityReader(device).read_hardware_id()
        device.reset.assert_called_once()

    def test_no_mac_in_output(self, monkeypatch: pytest.MonkeyPatch, device: MagicMock) -> None:
        """A successful run without an address is still a failure."""
        monkeypatch.setattr(flashing, "run_tool", ToolRecorder("Chip is ESP8266EX\n"))
        with pytest.raises(DeviceIOError):
            EsptoolIdentityReader(device).read_hardware_id()


class TestEsptoolFlasher:
    """Tests for EsptoolFlasher."""

    def test_command(self, device: MagicMock) -> None:
        """The write_flash command line matches the bench setup."""
        flasher = EsptoolFlasher(device, baudrate=460800, esptool=["python3", "esptool.py"])
        assert flasher.command("firmware.bin") == [
            "python3",
            "esptool.py",
            "--before",
            "no_reset",
            "--after",
            "no_reset",
            "--chip",
            "esp8266",
            "--port",
            "/dev/ttyUSB0",
            "--baud",
            "460800",
            "write_flash",
            "-fm",
            "qio",
            "0x0000",
            "firmware.bin",
        ]

    def test_flash(self, monkeypatch: pytest.MonkeyPatch, device: MagicMock) -> None:
        """flash() returns the tool output and resets afterwards."""
        monkeypatch.setattr(flashing, "run_tool", ToolRecorder("Hash of data verified.\n"))
        output = EsptoolFlasher(device).flash("firmware.bin")
        assert output == "Hash of data verified.\n"
        assert [c[0] for c in device.method_calls] == ["reset_for_upload", "reset"]


class TestPlatformio:
    """Tests for the PlatformIO wrappers."""

    def test_upload(self, monkeypatch: pytest.MonkeyPatch, device: MagicMock) -> None:
        """Uploading runs pio in the project directory."""
        tool = ToolRecorder("SUCCESS")
        monkeypatch.setattr(flashing, "run_tool", tool)

        PlatformioFlasher(device, "/opt/firmware").flash("esp12e")

        args, cwd = tool.calls[0]
        assert args == ["pio", "run", "-t", "upload", "-e", "esp12e", "--upload-port", "/dev/ttyUSB0"]
        assert cwd == Path("/opt/firmware")
        device.reset.assert_called_once()

    def test_build(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """build_firmware runs a plain pio build."""
        tool = ToolRecorder()
        monkeypatch.setattr(flashing, "run_tool", tool)
        build_firmware("esp12e", "/opt/firmware")
        assert tool.calls == [(["pio", "run", "-e", "esp12e"], "/opt/firmware")]


class TestRunTool:
    """Tests for run_tool()."""

    def test_output_is_returned(self) -> None:
        """Standard output and error are merged."""
        output = run_tool(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"]
        )
        assert "out" in output
        assert "err" in output

    def test_non_zero_exit(self) -> None:
        """A failing tool raises ProcessExecutionError with its output."""
        with pytest.raises(ProcessExecutionError) as excinfo:
            run_tool([sys.executable, "-c", "print('boom'); raise SystemExit(3)"])
        assert excinfo.value.returncode == 3
        assert "boom" in excinfo.value.output
        assert "exited with non-zero exit code 3" in str(excinfo.value)

    def test_missing_tool(self) -> None:
        """A tool that does not exist is reported as a failed run."""
        with pytest.raises(ProcessExecutionError) as excinfo:
            run_tool(["paneltest-no-such-tool"])
        assert excinfo.value.returncode == NOT_STARTED

    def test_cwd(self, tmp_path: Path) -> None:
        """The tool runs in the requested directory."""
        output = run_tool([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path)
        assert Path(output.strip()).resolve() == tmp_path.resolve()

"""MAC address readout and firmware flashing through esptool and PlatformIO.

Every tool run is bracketed by the ESP reset lines: the ESP is put into its
bootloader first, and reset back into the application afterwards, even when
the tool fails.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from paneltest_core.errors import DeviceIOError
from paneltest_core.interfaces.hardware import DeviceControl

from paneltest_station.tools import run_tool

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_FLASH_BAUDRATE = 921600
DEFAULT_ENVIRONMENT = "esp12e"

MAC_PREFIX = "MAC: "


def parse_mac_address(output: str) -> str:
    """Return the MAC address from ``esptool read_mac`` output.

    Raises:
        DeviceIOError: If no ``MAC: `` line is present.
    """
    for line in output.splitlines():
        if MAC_PREFIX in line:
            mac = line.split(MAC_PREFIX, 1)[1].strip()
            if mac:
                return mac
    raise DeviceIOError("No MAC address found")


class EsptoolIdentityReader:
    """Reads the ESP's MAC address with ``esptool read_mac``."""

    def __init__(
        self,
        device: DeviceControl,
        port: str = DEFAULT_PORT,
        esptool: Sequence[str] = ("esptool",),
    ) -> None:
        self._device = device
        self._port = port
        self._esptool = list(esptool)

    def read_hardware_id(self) -> tuple[str, str]:
        self._device.reset_for_upload()
        try:
            output = run_tool([*self._esptool, "--port", self._port, "read_mac"])
        finally:
            self._device.reset()
        mac = parse_mac_address(output)
        logger.info("MAC address: %s", mac)
        return mac, output


class EsptoolFlasher:
    """Writes a prebuilt firmware image with ``esptool write_flash``.

    The ESP is already in its bootloader when esptool starts, so esptool's own
    reset sequences are disabled.
    """

    def __init__(
        self,
        device: DeviceControl,
        port: str = DEFAULT_PORT,
        baudrate: int = DEFAULT_FLASH_BAUDRATE,
        esptool: Sequence[str] = ("esptool",),
    ) -> None:
        """Initialize the flasher.

        Args:
            device: ESP reset lines.
            port: Serial port of the board.
            baudrate: Flashing baud rate.
            esptool: Command that starts esptool, e.g. ``["python3", "esptool.py"]``.
        """
        self._device = device
        self._port = port
        self._baudrate = baudrate
        self._esptool = list(esptool)

    def command(self, image_path: str) -> list[str]:
        """Return the esptool command line for an image."""
        return [
            *self._esptool,
            "--before",
            "no_reset",
            "--after",
            "no_reset",
            "--chip",
            "esp8266",
            "--port",
            self._port,
            "--baud",
            str(self._baudrate),
            "write_flash",
            "-fm",
            "qio",
            "0x0000",
            image_path,
        ]

    def flash(self, image_path: str) -> str:
        logger.info("Flashing %s at %d baud", image_path, self._baudrate)
        self._device.reset_for_upload()
        try:
            return run_tool(self.command(image_path))
        finally:
            self._device.reset()


class PlatformioFlasher:
    """Builds and uploads the firmware project with ``pio run -t upload``.

    ``flash`` takes the PlatformIO environment name in place of an image path.
    """

    def __init__(
        self,
        device: DeviceControl,
        project_dir: str | Path,
        port: str = DEFAULT_PORT,
        pio: str = "pio",
    ) -> None:
        self._device = device
        self._project_dir = Path(project_dir)
        self._port = port
        self._pio = pio

    def flash(self, image_path: str) -> str:
        environment = image_path or DEFAULT_ENVIRONMENT
        logger.info("Uploading environment %s from %s", environment, self._project_dir)
        self._device.reset_for_upload()
        try:
            return run_tool(
                [self._pio, "run", "-t", "upload", "-e", environment, "--upload-port", self._port],
                cwd=self._project_dir,
            )
        finally:
            self._device.reset()


def build_firmware(
    environment: str = DEFAULT_ENVIRONMENT,
    project_dir: str | Path = ".",
    pio: str = "pio",
) -> str:
    """Build the firmware project once at startup.

    Returns:
        PlatformIO output.

    Raises:
        ProcessExecutionError: If the build fails.
    """
    logger.info("Building firmware environment %s in %s", environment, project_dir)
    return run_tool([pio, "run", "-e", environment], cwd=project_dir)

"""Tester options and station configuration.

Options come from ``TESTER_*`` environment variables, so one image can serve
several benches. The station file is YAML and describes the wiring of one
bench: serial console, ESP control pins, rail ADC, USB ids, firmware
locations, rails and the add-on sensor driver. Every station field
has a default that matches the reference bench, so the file is optional.

Example YAML:
    serial:
      port: "/dev/ttyUSB0"
      baudrate: 115200
      timeout: 10

    gpio:
      chip: 0
      reset_pin: 6
      flash_pin: 22

    adc:
      i2c_bus: 1
      address: 0x48

    usb:
      vendor_id: 0x1a86
      product_id: 0x7523

    firmware:
      project_dir: "slimevr-tracker-esp"
      environment: "esp12e"
      image: "slimevr-tracker-esp/.pio/build/esp12e/firmware.bin"
      esptool: ["esptool"]

    rails:
      - name: "VOUT"
        channel: "A2"
        bound: {any: null}
        gates: false
      - name: "B+"
        channel: "A3"
        bound: {greater_than: 4.0}
      - name: "3V3"
        channel: "A0"
        bound: {good_interval: [2.8, 3.2]}

    sensor:
      driver: "paneltest_station.bno08x:create_sensor"
      kwargs:
        i2c_bus: 1
        address: 0x4A
"""

from __future__ import annotations

import os
import socket
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from paneltest_core.errors import ConfigError
from paneltest_core.types.bounds import bound_check_from_dict
from paneltest_core.types.common import ChannelId
from paneltest_pipeline.mainboard import DEFAULT_RAILS, USB_PRODUCT_ID, USB_VENDOR_ID, VoltageRail

MAINBOARD = "mainboard"
AUXBOARD = "auxboard"
VARIANTS = (MAINBOARD, AUXBOARD)

DEFAULT_RPC_URL = "https://localhost:3000/api/rpc"
DEFAULT_PROJECT_DIR = "slimevr-tracker-esp"
DEFAULT_ENVIRONMENT = "esp12e"
DEFAULT_SENSOR_DRIVER = "paneltest_station.bno08x:create_sensor"
DEFAULT_LOG_FILE = "tester.log"
# Log file value that sends records to stderr instead
STDERR_LOG = "-"

_TRUE = ("1", "yes", "true", "on")
_FALSE = ("0", "no", "false", "off", "")


class FlashBackend(Enum):
    """How firmware gets onto the board.

    Attributes:
        ESPTOOL: Write a prebuilt image with esptool.
        PLATFORMIO: Build and upload with the PlatformIO tool chain.
    """

    ESPTOOL = "esptool"
    PLATFORMIO = "pio"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be yes or no, got {value!r}")


def _parse_number(name: str, value: str, kind: type) -> Any:
    try:
        number = kind(value)
    except ValueError:
        raise ConfigError(f"{name} must be a {kind.__name__}, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


@dataclass(frozen=True)
class TesterOptions:
    """Options read from the environment.

    Attributes:
        flash_backend: Flashing backend (``TESTER_FLASH_WITH``).
        flash_baudrate: esptool baud rate (``TESTER_FLASH_BAUDRATE``).
        no_build: Skip the startup firmware build (``TESTER_BUILD=no``).
        rpc_url: Report collector endpoint (``TESTER_RPC_URL``).
        rpc_auth_token: Collector authorization header (``TESTER_RPC_PASSWORD``).
        report_type: Board variant, also sent as the report type
            (``TESTER_REPORT_TYPE``).
        tester_identity: Station name sent with every report (``TESTER_NAME``).
        failure_file: Undelivered report file (``TESTER_FAILED_REPORTS``).
        upload_interval: Seconds between upload cycles (``TESTER_UPLOAD_INTERVAL``).
        retry_failed: Retry persisted failures (``TESTER_RETRY_FAILED``).
        log_file: Log destination (``TESTER_LOG_FILE``); "-" logs to stderr.
    """

    flash_backend: FlashBackend = FlashBackend.ESPTOOL
    flash_baudrate: int = 921600
    no_build: bool = False
    rpc_url: str = DEFAULT_RPC_URL
    rpc_auth_token: str = "password"
    report_type: str = MAINBOARD
    tester_identity: str = field(default_factory=socket.gethostname)
    failure_file: str = "failed_reports.json"
    upload_interval: float = 5.0
    retry_failed: bool = False
    log_file: str = DEFAULT_LOG_FILE

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TesterOptions:
        """Read options from environment variables.

        Args:
            environ: Variables to read. Defaults to ``os.environ``.

        Raises:
            ConfigError: If a variable has an invalid value.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}

        if "TESTER_BUILD" in env:
            kwargs["no_build"] = env["TESTER_BUILD"] == "no"

        if "TESTER_FLASH_WITH" in env:
            try:
                kwargs["flash_backend"] = FlashBackend(env["TESTER_FLASH_WITH"])
            except ValueError:
                raise ConfigError("TESTER_FLASH_WITH must be either 'pio' or 'esptool'") from None

        if "TESTER_FLASH_BAUDRATE" in env:
            kwargs["flash_baudrate"] = _parse_number(
                "TESTER_FLASH_BAUDRATE", env["TESTER_FLASH_BAUDRATE"], int
            )

        if "TESTER_RPC_URL" in env:
            kwargs["rpc_url"] = env["TESTER_RPC_URL"]
        if "TESTER_RPC_PASSWORD" in env:
            kwargs["rpc_auth_token"] = env["TESTER_RPC_PASSWORD"]

        if "TESTER_REPORT_TYPE" in env:
            report_type = env["TESTER_REPORT_TYPE"]
            if report_type not in VARIANTS:
                raise ConfigError(
                    f"TESTER_REPORT_TYPE must be one of {', '.join(VARIANTS)}, got {report_type!r}"
                )
            kwargs["report_type"] = report_type

        if env.get("TESTER_NAME"):
            kwargs["tester_identity"] = env["TESTER_NAME"]
        if env.get("TESTER_FAILED_REPORTS"):
            kwargs["failure_file"] = env["TESTER_FAILED_REPORTS"]

        if "TESTER_UPLOAD_INTERVAL" in env:
            kwargs["upload_interval"] = _parse_number(
                "TESTER_UPLOAD_INTERVAL", env["TESTER_UPLOAD_INTERVAL"], float
            )

        if "TESTER_RETRY_FAILED" in env:
            kwargs["retry_failed"] = _parse_bool("TESTER_RETRY_FAILED", env["TESTER_RETRY_FAILED"])

        if env.get("TESTER_LOG_FILE"):
            kwargs["log_file"] = env["TESTER_LOG_FILE"]

        return cls(**kwargs)


@dataclass(frozen=True)
class SerialSettings:
    """Serial console of the board under test."""

    port: str = "/dev/ttyUSB0"
    baudrate: int = 115200
    timeout: float = 10.0


@dataclass(frozen=True)
class GpioSettings:
    """ESP control lines (BCM numbering)."""

    chip: int = 0
    reset_pin: int = 6
    flash_pin: int = 22


@dataclass(frozen=True)
class AdcSettings:
    """Rail voltage ADC on I2C."""

    i2c_bus: int = 1
    address: int = 0x48


@dataclass(frozen=True)
class UsbSettings:
    """USB ids of the main board's serial bridge."""

    vendor_id: int = USB_VENDOR_ID
    product_id: int = USB_PRODUCT_ID


@dataclass(frozen=True)
class FirmwareSettings:
    """Firmware project and image locations.

    Attributes:
        project_dir: PlatformIO project directory.
        environment: PlatformIO build environment.
        image: Prebuilt image written by the esptool backend.
        esptool: Command that starts esptool.
    """

    project_dir: str = DEFAULT_PROJECT_DIR
    environment: str = DEFAULT_ENVIRONMENT
    image: str = f"{DEFAULT_PROJECT_DIR}/.pio/build/{DEFAULT_ENVIRONMENT}/firmware.bin"
    esptool: tuple[str, ...] = ("esptool",)


@dataclass(frozen=True)
class SensorSettings:
    """Add-on board IMU driver.

    Attributes:
        driver: Factory path in "module:function" format (the BNO08x driver
            by default).
        kwargs: Keyword arguments passed to the factory.
    """

    driver: str = DEFAULT_SENSOR_DRIVER
    kwargs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StationConfig:
    """Complete bench description."""

    serial: SerialSettings = field(default_factory=SerialSettings)
    gpio: GpioSettings = field(default_factory=GpioSettings)
    adc: AdcSettings = field(default_factory=AdcSettings)
    usb: UsbSettings = field(default_factory=UsbSettings)
    firmware: FirmwareSettings = field(default_factory=FirmwareSettings)
    rails: tuple[VoltageRail, ...] = DEFAULT_RAILS
    sensor: SensorSettings = field(default_factory=SensorSettings)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{name} must be a mapping")
    return section


def _build(cls: type, name: str, section: dict[str, Any]) -> Any:
    try:
        return cls(**section)
    except TypeError as exc:
        raise ConfigError(f"Invalid {name} section: {exc}") from exc


def _parse_rails(rails_data: Any) -> tuple[VoltageRail, ...]:
    if not isinstance(rails_data, list):
        raise ConfigError("rails must be a list")

    rails: list[VoltageRail] = []
    for rail_data in rails_data:
        if not isinstance(rail_data, dict):
            raise ConfigError("Each rail must be a mapping")
        name = rail_data.get("name")
        channel = rail_data.get("channel")
        if not name or not channel:
            raise ConfigError("Rail missing required field: name or channel")
        rails.append(
            VoltageRail(
                name=str(name),
                channel=ChannelId(str(channel)),
                bound=bound_check_from_dict(rail_data.get("bound", {"any": None})),
                gates=bool(rail_data.get("gates", True)),
            )
        )
    return tuple(rails)


def parse_station_config(data: dict[str, Any]) -> StationConfig:
    """Build a StationConfig from already-parsed YAML.

    Raises:
        ConfigError: If a section is malformed.
        ThresholdError: If a rail bound is invalid.
    """
    if not isinstance(data, dict):
        raise ConfigError("Station config must be a YAML mapping")

    firmware_data = dict(_section(data, "firmware"))
    if "esptool" in firmware_data:
        esptool = firmware_data["esptool"]
        firmware_data["esptool"] = (esptool,) if isinstance(esptool, str) else tuple(esptool)

    sensor_data = _section(data, "sensor")
    driver = sensor_data.get("driver", DEFAULT_SENSOR_DRIVER)
    if not driver or not isinstance(driver, str):
        raise ConfigError("sensor.driver must be a 'module:function' path")
    sensor = SensorSettings(driver=driver, kwargs=dict(sensor_data.get("kwargs") or {}))

    return StationConfig(
        serial=_build(SerialSettings, "serial", _section(data, "serial")),
        gpio=_build(GpioSettings, "gpio", _section(data, "gpio")),
        adc=_build(AdcSettings, "adc", _section(data, "adc")),
        usb=_build(UsbSettings, "usb", _section(data, "usb")),
        firmware=_build(FirmwareSettings, "firmware", firmware_data),
        rails=_parse_rails(data["rails"]) if "rails" in data else DEFAULT_RAILS,
        sensor=sensor,
    )


def load_station_config(path: str | Path | None = None) -> StationConfig:
    """Load the station configuration.

    Args:
        path: Path to the station YAML file. None returns the defaults.

    Returns:
        Parsed StationConfig.

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    if path is None:
        return StationConfig()

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Station config not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    return parse_station_config(data or {})

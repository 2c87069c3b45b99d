"""Wiring the station hardware into the pipeline selected by the options."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any

from paneltest_core.errors import ConfigError, PaneltestError
from paneltest_core.interfaces.hardware import FirmwareFlasher
from paneltest_logbus.bus import Reporter
from paneltest_pipeline.auxboard import AuxBoardPipeline
from paneltest_pipeline.mainboard import MainBoardHardware, MainBoardPipeline
from paneltest_pipeline.pipeline import TestPipeline
from paneltest_station.ads1115 import Ads1115, Ads1115Config
from paneltest_station.esp import EspControl, EspPins
from paneltest_station.flashing import EsptoolFlasher, EsptoolIdentityReader, PlatformioFlasher
from paneltest_station.serial_port import open_serial_channel
from paneltest_station.usb import UsbPresence

from paneltest_runner.config import AUXBOARD, MAINBOARD, FlashBackend, StationConfig, TesterOptions
from paneltest_runner.loader import load_driver

logger = logging.getLogger(__name__)


@dataclass
class Station:
    """A pipeline together with the hardware it owns.

    Attributes:
        pipeline: The board test pipeline.
        devices: Hardware objects to close on shutdown.
    """

    pipeline: TestPipeline
    devices: list[Any] = field(default_factory=list)

    def close(self) -> None:
        """Close every owned device, logging failures."""
        for device in reversed(self.devices):
            try:
                device.close()
            except Exception as e:  # pylint: disable=broad-except
                logger.warning("Failed to close %s: %s", type(device).__name__, e)
        self.devices.clear()


def build_flasher(
    options: TesterOptions, station: StationConfig, esp: EspControl
) -> tuple[FirmwareFlasher, str]:
    """Create the configured flashing backend.

    Returns:
        Tuple of (flasher, argument for ``flash``): the image path for
        esptool, the build environment for PlatformIO.
    """
    if options.flash_backend is FlashBackend.PLATFORMIO:
        flasher = PlatformioFlasher(esp, station.firmware.project_dir, port=station.serial.port)
        return flasher, station.firmware.environment
    return (
        EsptoolFlasher(
            esp,
            port=station.serial.port,
            baudrate=options.flash_baudrate,
            esptool=station.firmware.esptool,
        ),
        station.firmware.image,
    )


def build_mainboard(options: TesterOptions, station: StationConfig, reporter: Reporter) -> Station:
    """Create the main board pipeline and its hardware.

    Devices open lazily on first use, so building never touches the bus.
    """
    adc = Ads1115(Ads1115Config(i2c_bus=station.adc.i2c_bus, address=station.adc.address))
    esp = EspControl(
        EspPins(
            chip=station.gpio.chip,
            reset_pin=station.gpio.reset_pin,
            flash_pin=station.gpio.flash_pin,
        )
    )
    flasher, firmware_image = build_flasher(options, station, esp)

    hardware = MainBoardHardware(
        presence=UsbPresence(),
        voltages=adc,
        device=esp,
        identity=EsptoolIdentityReader(esp, port=station.serial.port, esptool=station.firmware.esptool),
        flasher=flasher,
        open_serial=functools.partial(
            open_serial_channel,
            station.serial.port,
            station.serial.baudrate,
            station.serial.timeout,
        ),
    )
    pipeline = MainBoardPipeline(
        reporter,
        hardware,
        firmware_image,
        rails=station.rails,
        vendor_id=station.usb.vendor_id,
        product_id=station.usb.product_id,
    )
    logger.info(
        "Main board pipeline: %s flashing, serial %s", options.flash_backend.value, station.serial.port
    )
    return Station(pipeline, [adc, esp])


def build_auxboard(station: StationConfig, reporter: Reporter) -> Station:
    """Create the add-on board pipeline with the configured sensor driver.

    Raises:
        ConfigError: If the driver cannot be loaded or its factory fails.
    """
    factory = load_driver(station.sensor.driver)
    try:
        sensor = factory(**station.sensor.kwargs)
    except PaneltestError:
        raise
    except Exception as e:  # pylint: disable=broad-except
        raise ConfigError(f"Sensor driver '{station.sensor.driver}' failed: {e}") from e
    logger.info("Add-on board pipeline: sensor driver %s", station.sensor.driver)
    devices = [sensor] if hasattr(sensor, "close") else []
    return Station(AuxBoardPipeline(reporter, sensor), devices)


def build_station(options: TesterOptions, station: StationConfig, reporter: Reporter) -> Station:
    """Create the pipeline for ``options.report_type``.

    Raises:
        ConfigError: If the variant is unknown or its configuration is incomplete.
    """
    if options.report_type == MAINBOARD:
        return build_mainboard(options, station, reporter)
    if options.report_type == AUXBOARD:
        return build_auxboard(station, reporter)
    raise ConfigError(f"Unknown board variant: {options.report_type!r}")

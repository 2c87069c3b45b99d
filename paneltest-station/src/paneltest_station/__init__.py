"""Station hardware for the panel tester.

Concrete implementations of the hardware protocols in
``paneltest_core.interfaces.hardware`` for the Raspberry Pi test bench.

Modules:
    ads1115: Rail voltage ADC on I2C (smbus2).
    bno08x: Add-on board IMU over I2C (smbus2).
    esp: ESP8266 reset and boot-mode lines (lgpio).
    usb: USB presence detection (pyserial port enumeration).
    serial_port: Serial console of the board (pyserial).
    tools: External tool runner.
    flashing: MAC readout and flashing via esptool or PlatformIO.
"""

from paneltest_station.ads1115 import Ads1115, Ads1115Config, Ads1115Mux, Ads1115Register
from paneltest_station.bno08x import Bno08x, Bno08xConfig, I2cTransport, create_sensor
from paneltest_station.esp import EspControl, EspPins
from paneltest_station.flashing import (
    EsptoolFlasher,
    EsptoolIdentityReader,
    PlatformioFlasher,
    build_firmware,
    parse_mac_address,
)
from paneltest_station.serial_port import PySerialChannel, open_serial_channel
from paneltest_station.tools import run_tool
from paneltest_station.usb import UsbPresence

__all__ = [
    # ADC
    "Ads1115",
    "Ads1115Config",
    "Ads1115Mux",
    "Ads1115Register",
    # IMU
    "Bno08x",
    "Bno08xConfig",
    "I2cTransport",
    "create_sensor",
    # ESP control
    "EspControl",
    "EspPins",
    # Tools
    "EsptoolFlasher",
    "EsptoolIdentityReader",
    "PlatformioFlasher",
    "build_firmware",
    "parse_mac_address",
    "run_tool",
    # Serial and USB
    "PySerialChannel",
    "UsbPresence",
    "open_serial_channel",
]

"""ADS1115 16-bit ADC driver for the rail voltage measurements.

The tester wires the board's power rails to the four single-ended inputs of
an ADS1115 on the Raspberry Pi I2C bus. Conversions are single-shot with the
+/-6.144V full scale range (187.5 uV per LSB) and the 860 SPS data rate, so a
full rail sweep takes a few milliseconds.

Register map used here:
- 0x00 CONVERSION: last conversion result, signed 16-bit big-endian
- 0x01 CONFIG: OS | MUX | PGA | MODE | DR | COMP_* fields
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from paneltest_core.errors import DeviceIOError
from paneltest_core.types.common import ChannelId

logger = logging.getLogger(__name__)

LSB_VOLTS = 187.5e-6


class Ads1115Register(IntEnum):
    """ADS1115 register addresses."""

    CONVERSION = 0x00
    CONFIG = 0x01


class Ads1115Mux(IntEnum):
    """Single-ended input multiplexer settings (AINx against GND)."""

    A0 = 0b100
    A1 = 0b101
    A2 = 0b110
    A3 = 0b111


# Config word fields
_OS_START = 0x8000
_PGA_6_144V = 0b000 << 9
_MODE_SINGLE_SHOT = 0x0100
_DR_860_SPS = 0b111 << 5
_COMP_DISABLE = 0x0003


@dataclass(frozen=True)
class Ads1115Config:
    """Configuration for the ADS1115.

    Attributes:
        i2c_bus: I2C bus number (1 on a Raspberry Pi).
        address: 7-bit I2C address (0x48 with ADDR tied to GND).
        conversion_timeout: Seconds to wait for a conversion to complete.
    """

    i2c_bus: int = 1
    address: int = 0x48
    conversion_timeout: float = 0.1

    def __post_init__(self) -> None:
        if not 0x48 <= self.address <= 0x4B:
            raise ValueError(f"address must be 0x48-0x4B, got 0x{self.address:02X}")
        if self.conversion_timeout <= 0:
            raise ValueError("conversion_timeout must be positive")


class Ads1115:
    """Single-shot voltage reader for the ADS1115.

    Implements the ``VoltageSource`` protocol. Channels are named "A0" to "A3".

    Example:
        adc = Ads1115(Ads1115Config(i2c_bus=1))
        adc.open()
        volts = adc.measure(ChannelId("A3"))
        adc.close()
    """

    def __init__(self, config: Ads1115Config | None = None, bus: Any = None) -> None:
        """Initialize the driver.

        Args:
            config: Device configuration. Uses defaults if None.
            bus: Optional SMBus instance (smbus2 compatible), mainly for testing.
        """
        self._config = config or Ads1115Config()
        self._bus = bus

    @property
    def config(self) -> Ads1115Config:
        """Return the device configuration."""
        return self._config

    @property
    def is_open(self) -> bool:
        """Return True if an I2C bus is attached."""
        return self._bus is not None

    def open(self) -> None:
        """Open the I2C bus.

        Raises:
            ImportError: If smbus2 is not available.
            DeviceIOError: If the bus cannot be opened.
        """
        if self._bus is not None:
            return

        try:
            import smbus2
        except ImportError as exc:
            raise ImportError(
                "smbus2 library is not installed. Install with: pip install smbus2"
            ) from exc

        try:
            self._bus = smbus2.SMBus(self._config.i2c_bus)
        except OSError as exc:
            raise DeviceIOError(f"Failed to open I2C bus {self._config.i2c_bus}: {exc}") from exc
        logger.debug("Opened ADS1115 on bus %d at 0x%02X", self._config.i2c_bus, self._config.address)

    def close(self) -> None:
        """Close the I2C bus. Safe to call more than once."""
        if self._bus is None:
            return
        try:
            self._bus.close()
        except Exception:  # pylint: disable=broad-exception-caught
            pass
        self._bus = None

    def measure(self, channel: ChannelId) -> float:
        """Run one conversion on a single-ended input.

        Args:
            channel: Input name, "A0" to "A3".

        Returns:
            Voltage in volts.

        Raises:
            DeviceIOError: On an unknown channel, a bus error or a conversion timeout.
        """
        try:
            mux = Ads1115Mux[channel]
        except KeyError:
            raise DeviceIOError(f"Unknown ADC channel: {channel!r}") from None

        if self._bus is None:
            self.open()

        try:
            self._write_register(Ads1115Register.CONFIG, config_word(mux))
            self._wait_for_conversion()
            raw = self._read_register(Ads1115Register.CONVERSION)
        except OSError as exc:
            raise DeviceIOError(f"I2C error while measuring {channel}: {exc}") from exc

        if raw & 0x8000:
            raw -= 1 << 16
        volts = raw * LSB_VOLTS
        logger.debug("ADC %s: raw=%d, %.4fV", channel, raw, volts)
        return volts

    def _wait_for_conversion(self) -> None:
        deadline = time.monotonic() + self._config.conversion_timeout
        while not self._read_register(Ads1115Register.CONFIG) & _OS_START:
            if time.monotonic() > deadline:
                raise DeviceIOError("ADS1115 conversion timed out")
            time.sleep(0.0005)

    def _write_register(self, register: int, value: int) -> None:
        assert self._bus is not None
        self._bus.write_i2c_block_data(
            self._config.address, register, [(value >> 8) & 0xFF, value & 0xFF]
        )

    def _read_register(self, register: int) -> int:
        assert self._bus is not None
        high, low = self._bus.read_i2c_block_data(self._config.address, register, 2)
        return (high << 8) | low


def config_word(mux: Ads1115Mux) -> int:
    """Build the CONFIG register value that starts a single-shot conversion."""
    return _OS_START | (mux << 12) | _PGA_6_144V | _MODE_SINGLE_SHOT | _DR_860_SPS | _COMP_DISABLE

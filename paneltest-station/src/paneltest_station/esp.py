"""Reset and boot-mode control of the ESP8266 on the board under test.

Two Raspberry Pi GPIO lines drive the ESP: RST (active low) and GPIO0 /
FLASH (low during reset selects the serial bootloader). Both are claimed as
outputs and idle high. Uses lgpio so it runs on the Pi 5 as well.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from paneltest_core.errors import DeviceIOError

logger = logging.getLogger(__name__)

LOW = 0
HIGH = 1


@dataclass(frozen=True)
class EspPins:
    """GPIO wiring of the ESP control lines.

    Attributes:
        chip: GPIO chip number (0 on the Pi 4 and earlier, 4 on the Pi 5).
        reset_pin: BCM pin wired to the ESP RST line.
        flash_pin: BCM pin wired to the ESP GPIO0 line.
        reset_pulse: Seconds the reset line is held low.
        boot_delay: Extra seconds after reset before the ESP is usable.
    """

    chip: int = 0
    reset_pin: int = 6
    flash_pin: int = 22
    reset_pulse: float = 0.2
    boot_delay: float = 0.1

    def __post_init__(self) -> None:
        if self.reset_pin == self.flash_pin:
            raise ValueError("reset_pin and flash_pin must differ")


class EspControl:
    """Implements ``DeviceControl`` on two lgpio output lines."""

    def __init__(
        self,
        pins: EspPins | None = None,
        lgpio_module: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            pins: GPIO wiring. Uses defaults if None.
            lgpio_module: lgpio compatible module, mainly for testing.
            sleep: Sleep function, injectable for tests.
        """
        self._pins = pins or EspPins()
        self._lgpio = lgpio_module
        self._sleep = sleep
        self._handle: int | None = None

    @property
    def pins(self) -> EspPins:
        """Return the pin configuration."""
        return self._pins

    @property
    def is_open(self) -> bool:
        """Return True if the GPIO lines are claimed."""
        return self._handle is not None

    def open(self) -> None:
        """Open the GPIO chip and claim both lines as high outputs.

        Raises:
            ImportError: If lgpio is not available.
            DeviceIOError: If the chip or a line cannot be claimed.
        """
        if self._handle is not None:
            return

        if self._lgpio is None:
            try:
                import lgpio  # type: ignore[import-not-found]
            except ImportError as exc:
                raise ImportError(
                    "lgpio library is not installed. Install with: pip install lgpio"
                ) from exc
            self._lgpio = lgpio

        try:
            handle = self._lgpio.gpiochip_open(self._pins.chip)
        except Exception as exc:
            raise DeviceIOError(f"Failed to open GPIO chip {self._pins.chip}: {exc}") from exc

        try:
            self._lgpio.gpio_claim_output(handle, self._pins.reset_pin, HIGH)
            self._lgpio.gpio_claim_output(handle, self._pins.flash_pin, HIGH)
        except Exception as exc:
            self._lgpio.gpiochip_close(handle)
            raise DeviceIOError(f"Failed to claim ESP control pins: {exc}") from exc

        self._handle = handle
        logger.debug(
            "Claimed ESP pins rst=%d flash=%d on chip %d",
            self._pins.reset_pin,
            self._pins.flash_pin,
            self._pins.chip,
        )

    def close(self) -> None:
        """Release both lines and the chip. Safe to call more than once."""
        if self._handle is None:
            return
        for pin in (self._pins.reset_pin, self._pins.flash_pin):
            try:
                self._lgpio.gpio_free(self._handle, pin)
            except Exception:  # pylint: disable=broad-exception-caught
                pass
        try:
            self._lgpio.gpiochip_close(self._handle)
        except Exception:  # pylint: disable=broad-exception-caught
            pass
        self._handle = None

    def reset_no_delay(self) -> None:
        """Pulse RST low and return as soon as it is released."""
        self._write(self._pins.reset_pin, LOW)
        self._sleep(self._pins.reset_pulse)
        self._write(self._pins.reset_pin, HIGH)

    def reset(self) -> None:
        """Pulse RST and give the ESP time to boot."""
        self.reset_no_delay()
        self._sleep(self._pins.boot_delay)

    def reset_for_upload(self) -> None:
        """Reset with GPIO0 held low so the ESP enters its bootloader."""
        logger.debug("Resetting ESP into bootloader")
        self._write(self._pins.flash_pin, LOW)
        self.reset()
        self._write(self._pins.flash_pin, HIGH)

    def _write(self, pin: int, value: int) -> None:
        if self._handle is None:
            self.open()
        try:
            self._lgpio.gpio_write(self._handle, pin, value)
        except Exception as exc:
            raise DeviceIOError(f"Failed to drive GPIO {pin}: {exc}") from exc

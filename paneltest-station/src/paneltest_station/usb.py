"""USB presence detection through pyserial's port enumeration."""

from __future__ import annotations

import logging
from typing import Any, Callable

from serial.tools import list_ports

logger = logging.getLogger(__name__)


class UsbPresence:
    """Implements ``DevicePresence`` by scanning the serial ports.

    The boards under test enumerate as USB serial bridges, so a matching
    vendor/product id among the serial ports means the board is plugged in.
    """

    def __init__(self, comports: Callable[[], list[Any]] = list_ports.comports) -> None:
        """Initialize the detector.

        Args:
            comports: Port enumeration function, injectable for tests.
        """
        self._comports = comports

    def find_port(self, vendor_id: int, product_id: int) -> str | None:
        """Return the device path of the first matching port, or None."""
        for port in self._comports():
            if port.vid == vendor_id and port.pid == product_id:
                return str(port.device)
        return None

    def is_present(self, vendor_id: int, product_id: int) -> bool:
        device = self.find_port(vendor_id, product_id)
        if device is not None:
            logger.debug("Found %04x:%04x at %s", vendor_id, product_id, device)
        return device is not None

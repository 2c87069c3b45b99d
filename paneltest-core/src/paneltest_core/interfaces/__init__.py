"""Protocol-based collaborator interfaces for paneltest.

Hardware: DevicePresence, VoltageSource, DeviceControl, IdentityReader,
    FirmwareFlasher, ByteSource, SerialChannel, SensorLink
Reporting: ReportSink, FailureStore
"""

from paneltest_core.interfaces.hardware import (
    ByteSource,
    DeviceControl,
    DevicePresence,
    FirmwareFlasher,
    IdentityReader,
    SensorLink,
    SerialChannel,
    VoltageSource,
)
from paneltest_core.interfaces.reporting import FailureStore, ReportSink

__all__ = [
    # Hardware
    "ByteSource",
    "DeviceControl",
    "DevicePresence",
    "FirmwareFlasher",
    "IdentityReader",
    "SensorLink",
    "SerialChannel",
    "VoltageSource",
    # Reporting
    "FailureStore",
    "ReportSink",
]

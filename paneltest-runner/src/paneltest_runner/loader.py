"""Loading the add-on board sensor driver named in the station file.

The IMU driver is bench specific and not part of this package, so the
station file names a factory as "module:function" and it is imported at
startup.

Example:
    factory = load_driver("my_sensors.bno085:create_sensor")
    sensor = factory(i2c_bus=1)
"""

from __future__ import annotations

import importlib
from typing import Any, Callable

from paneltest_core.errors import ConfigError


def load_driver(driver_path: str) -> Callable[..., Any]:
    """Import a driver factory.

    Args:
        driver_path: Path in "module:function" format.

    Returns:
        The factory callable.

    Raises:
        ConfigError: If the path is malformed, the module cannot be imported,
            or the attribute is missing or not callable.
    """
    module_path, sep, func_name = driver_path.rpartition(":")
    if not sep or not module_path or not func_name:
        raise ConfigError(
            f"Invalid driver path '{driver_path}': must be in 'module:function' format"
        )

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ConfigError(f"Failed to import module '{module_path}': {exc}") from exc

    factory = getattr(module, func_name, None)
    if factory is None:
        raise ConfigError(f"Module '{module_path}' has no attribute '{func_name}'")
    if not callable(factory):
        raise ConfigError(f"'{driver_path}' is not callable")
    return factory

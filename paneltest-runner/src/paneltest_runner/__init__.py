"""Tester process: options, station wiring, the worker loop and the CLI."""

from paneltest_runner.builder import Station, build_station
from paneltest_runner.config import (
    FlashBackend,
    StationConfig,
    TesterOptions,
    load_station_config,
)
from paneltest_runner.loader import load_driver
from paneltest_runner.worker import TestWorker

__all__ = [
    "FlashBackend",
    "Station",
    "StationConfig",
    "TestWorker",
    "TesterOptions",
    "build_station",
    "load_driver",
    "load_station_config",
]

"""Board test pipelines.

A pipeline runs an ordered list of steps against one attached board,
recording one TestStepRecord per step and stopping at the first failure.

Example:
    >>> pipeline = AuxBoardPipeline(bus.reporter(), sensor)
    >>> pipeline.wait_for_device_connect()
    >>> outcome = pipeline.run()
    >>> outcome.passed
    True
"""

from paneltest_pipeline.auxboard import AuxBoardPipeline
from paneltest_pipeline.context import BoardContext
from paneltest_pipeline.mainboard import (
    DEFAULT_RAILS,
    USB_PRODUCT_ID,
    USB_VENDOR_ID,
    MainBoardHardware,
    MainBoardPipeline,
    VoltageRail,
)
from paneltest_pipeline.pipeline import TestPipeline, wait_until_absent, wait_until_present
from paneltest_pipeline.step import PipelineStep, StepAction, StepOutcome

__all__ = [
    # Base
    "BoardContext",
    "PipelineStep",
    "StepAction",
    "StepOutcome",
    "TestPipeline",
    "wait_until_absent",
    "wait_until_present",
    # Main board
    "DEFAULT_RAILS",
    "MainBoardHardware",
    "MainBoardPipeline",
    "USB_PRODUCT_ID",
    "USB_VENDOR_ID",
    "VoltageRail",
    # Aux board
    "AuxBoardPipeline",
]

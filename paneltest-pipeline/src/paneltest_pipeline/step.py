"""Pipeline step definitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from paneltest_core.errors import PatternMatchFailure, ProcessExecutionError
from paneltest_core.types.board import TestStepRecord
from paneltest_core.types.common import Timestamp

if TYPE_CHECKING:
    from paneltest_pipeline.context import BoardContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepOutcome:
    """What a step action observed.

    Attributes:
        value: Observed value for the record (e.g., "4.12V", "true").
        log: Tool or device output to attach to the record.
        failed: True if the acceptance condition was not met.
        message: Operator-facing summary. Defaults to the step name.
    """

    value: str
    log: str | None = None
    failed: bool = False
    message: str = ""


# Type alias for step action callback
StepAction = Callable[["BoardContext"], StepOutcome]


def _error_log(exc: BaseException) -> str:
    if isinstance(exc, PatternMatchFailure):
        return exc.log
    if isinstance(exc, ProcessExecutionError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def _error_summary(exc: BaseException) -> str:
    lines = str(exc).strip().splitlines()
    if not lines:
        return type(exc).__name__
    # Scanner failures end with the reason; everything else starts with it.
    return lines[-1] if isinstance(exc, PatternMatchFailure) else lines[0]


@dataclass
class PipelineStep:
    """One named check in a test pipeline.

    Executing a step always appends exactly one record to the board. Any
    exception raised by the action marks the record failed instead of
    propagating.

    Example:
        flashing = PipelineStep(
            name="Flashing",
            condition="Flashing should work",
            action=flash_firmware,
            progress="Flashing...",
            failure_hint="Flashing failed",
        )
    """

    name: str
    condition: str
    action: StepAction
    progress: str | None = None
    failure_hint: str | None = None

    def execute(self, context: BoardContext) -> TestStepRecord:
        """Run the action and record its outcome.

        Args:
            context: Context of the board under test.

        Returns:
            The record appended to ``context.board``.
        """
        reporter = context.reporter
        if self.progress:
            reporter.in_progress(self.progress)

        started_at = Timestamp.now()
        try:
            logger.debug("Running step %s", self.name)
            outcome = self.action(context)
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Step %s failed: %s", self.name, _error_summary(e))
            outcome = StepOutcome(
                value="N/A",
                log=_error_log(e),
                failed=True,
                message=f"{self.name}: {_error_summary(e)}",
            )
        ended_at = Timestamp.now()

        record = TestStepRecord(
            step=self.name,
            condition=self.condition,
            observed_value=outcome.value,
            attached_log=outcome.log,
            failed=outcome.failed,
            started_at=started_at,
            ended_at=ended_at,
        )
        context.board.add_step(record)

        message = outcome.message or self.name
        if outcome.failed:
            reporter.error(message)
            if self.failure_hint:
                reporter.error(f"-> {self.failure_hint}")
        else:
            reporter.success(message)

        return record

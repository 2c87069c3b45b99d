"""Board audit trail types.

A Board collects one TestStepRecord per executed pipeline step, in execution
order. The pipeline finishes it exactly once and wraps it in a TestOutcome;
after it is handed to the report outbox the worker never touches it again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from paneltest_core.errors import StateError
from paneltest_core.types.common import BoardId, Timestamp


@dataclass(frozen=True)
class TestStepRecord:
    """Immutable record of one executed step.

    Attributes:
        step: Step name (e.g., "Read MAC address").
        condition: Human-readable acceptance condition.
        observed_value: What was observed (e.g., "3.31V", "true").
        attached_log: Tool or device output captured during the step.
        failed: True if the step did not meet its condition.
        started_at: Time the step's operation started.
        ended_at: Time the step's operation ended.
    """

    __test__ = False  # not a pytest test class

    step: str
    condition: str
    observed_value: str
    attached_log: str | None
    failed: bool
    started_at: Timestamp
    ended_at: Timestamp

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for local persistence."""
        return {
            "step": self.step,
            "condition": self.condition,
            "observed_value": self.observed_value,
            "attached_log": self.attached_log,
            "failed": self.failed,
            "started_at": self.started_at.unix_ns,
            "ended_at": self.ended_at.unix_ns,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestStepRecord:
        """Create from a dictionary produced by :meth:`to_dict`.

        Raises:
            KeyError: If a required field is missing.
        """
        return cls(
            step=data["step"],
            condition=data["condition"],
            observed_value=data["observed_value"],
            attached_log=data.get("attached_log"),
            failed=bool(data["failed"]),
            started_at=Timestamp(int(data["started_at"])),
            ended_at=Timestamp(int(data["ended_at"])),
        )


@dataclass
class Board:
    """One physical unit under test and its audit trail.

    Attributes:
        id: Device identity, assigned once known. None until then.
        steps: Step records in execution order. Append-only.
        started_at: Creation time.
        ended_at: Set exactly once by :meth:`finish`.
    """

    id: BoardId | None = None
    steps: list[TestStepRecord] = field(default_factory=list)
    started_at: Timestamp = field(default_factory=Timestamp.now)
    ended_at: Timestamp | None = None

    def add_step(self, record: TestStepRecord) -> None:
        """Append a step record.

        Raises:
            StateError: If the board has already been finished.
        """
        if self.ended_at is not None:
            raise StateError("Cannot add a step to a finished board")
        self.steps.append(record)

    def finish(self) -> None:
        """Set ``ended_at`` to now.

        Raises:
            StateError: If the board has already been finished.
        """
        if self.ended_at is not None:
            raise StateError("Board already finished")
        self.ended_at = Timestamp.now()

    @property
    def is_finished(self) -> bool:
        """Return True if ``ended_at`` has been set."""
        return self.ended_at is not None

    @property
    def failed_step(self) -> TestStepRecord | None:
        """Return the first failed step, or None if every step passed."""
        for record in self.steps:
            if record.failed:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for local persistence."""
        return {
            "id": self.id,
            "steps": [s.to_dict() for s in self.steps],
            "started_at": self.started_at.unix_ns,
            "ended_at": self.ended_at.unix_ns if self.ended_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Board:
        """Create from a dictionary produced by :meth:`to_dict`."""
        ended_at = data.get("ended_at")
        board_id = data.get("id")
        return cls(
            id=BoardId(board_id) if board_id is not None else None,
            steps=[TestStepRecord.from_dict(s) for s in data.get("steps", [])],
            started_at=Timestamp(int(data["started_at"])),
            ended_at=Timestamp(int(ended_at)) if ended_at is not None else None,
        )


@dataclass(frozen=True)
class TestOutcome:
    """Terminal verdict of one pipeline run. Use :class:`Passed` or :class:`Failed`."""

    __test__ = False  # not a pytest test class

    board: Board

    @property
    def passed(self) -> bool:
        """Return True for a Passed outcome."""
        return isinstance(self, Passed)


@dataclass(frozen=True)
class Passed(TestOutcome):
    """Every step of the pipeline passed."""


@dataclass(frozen=True)
class Failed(TestOutcome):
    """The pipeline stopped at a failed step."""


@dataclass(frozen=True)
class UploadFailureRecord:
    """A board whose upload attempt failed, with the reason.

    Attributes:
        board: The board that could not be delivered.
        error: Description of the failure.
    """

    board: Board
    error: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the local failure file."""
        return {"board": self.board.to_dict(), "error": self.error}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UploadFailureRecord:
        """Create from a dictionary read from the local failure file."""
        return cls(board=Board.from_dict(data["board"]), error=str(data["error"]))

"""Tests for board audit trail types."""

from __future__ import annotations

import pytest

from paneltest_core.errors import StateError
from paneltest_core.types.board import (
    Board,
    Failed,
    Passed,
    TestStepRecord,
    UploadFailureRecord,
)
from paneltest_core.types.common import BoardId, Timestamp


def make_record(step: str = "Serial", failed: bool = False) -> TestStepRecord:
    return TestStepRecord(
        step=step,
        condition="Serial should work",
        observed_value="false" if failed else "true",
        attached_log=None,
        failed=failed,
        started_at=Timestamp(1_700_000_000_000_000_000),
        ended_at=Timestamp(1_700_000_000_500_000_123),
    )


class TestBoard:
    """Tests for Board."""

    def test_defaults(self) -> None:
        """Test a new board has no id, no steps and is not finished."""
        board = Board()
        assert board.id is None
        assert board.steps == []
        assert board.is_finished is False

    def test_add_step_keeps_order(self) -> None:
        """Test steps are kept in insertion order."""
        board = Board()
        board.add_step(make_record("A"))
        board.add_step(make_record("B"))
        assert [s.step for s in board.steps] == ["A", "B"]

    def test_finish(self) -> None:
        """Test finish sets ended_at after started_at."""
        board = Board()
        board.finish()
        assert board.is_finished
        assert board.ended_at is not None
        assert board.ended_at >= board.started_at

    def test_finish_twice_raises(self) -> None:
        """Test a board can only be finished once."""
        board = Board()
        board.finish()
        with pytest.raises(StateError, match="already finished"):
            board.finish()

    def test_add_step_after_finish_raises(self) -> None:
        """Test a finished board rejects new steps."""
        board = Board()
        board.finish()
        with pytest.raises(StateError):
            board.add_step(make_record())

    def test_failed_step(self) -> None:
        """Test failed_step returns the first failed record."""
        board = Board()
        assert board.failed_step is None
        board.add_step(make_record("A"))
        board.add_step(make_record("B", failed=True))
        assert board.failed_step is not None
        assert board.failed_step.step == "B"

    def test_roundtrip(self) -> None:
        """Test to_dict/from_dict preserves every field exactly."""
        board = Board(id=BoardId("AA:BB"), started_at=Timestamp(1_000))
        board.add_step(make_record())
        board.add_step(
            TestStepRecord("Flashing", "Flashing should work", "false",
                           "esptool output", True, Timestamp(5), Timestamp(6))
        )
        board.finish()
        restored = Board.from_dict(board.to_dict())
        assert restored == board

    def test_roundtrip_unidentified_unfinished(self) -> None:
        """Test a board without id or end time survives serialization."""
        board = Board(started_at=Timestamp(42))
        restored = Board.from_dict(board.to_dict())
        assert restored.id is None
        assert restored.ended_at is None
        assert restored.started_at == Timestamp(42)


class TestOutcomes:
    """Tests for Passed/Failed outcomes."""

    def test_passed(self) -> None:
        """Test Passed reports passed."""
        assert Passed(Board()).passed is True

    def test_failed(self) -> None:
        """Test Failed reports not passed."""
        assert Failed(Board()).passed is False


class TestUploadFailureRecord:
    """Tests for UploadFailureRecord."""

    def test_roundtrip(self) -> None:
        """Test the record survives the failure file format."""
        board = Board(id=BoardId("AA:BB"), started_at=Timestamp(10))
        board.add_step(make_record())
        board.finish()
        record = UploadFailureRecord(board, "HTTP 500")
        data = record.to_dict()
        assert data["error"] == "HTTP 500"
        assert data["board"]["id"] == "AA:BB"
        assert UploadFailureRecord.from_dict(data) == record

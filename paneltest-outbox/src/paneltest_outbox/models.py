"""Pydantic models for the report collector RPC API.

The collector accepts JSON-RPC style requests of the form
``{"method": "insert_test_report", "params": {...}}`` with camelCase field
names and ISO-8601 UTC timestamps.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from paneltest_core.types.board import TestStepRecord
from paneltest_core.types.common import Timestamp

INSERT_TEST_REPORT = "insert_test_report"


class ReportValue(BaseModel):
    """One step of a test report.

    Attributes:
        step: Step name.
        condition: Acceptance condition.
        value: Observed value.
        logs: Attached tool or device output.
        failed: Whether the step failed.
        started_at: ISO timestamp when the step started.
        ended_at: ISO timestamp when the step ended.
    """

    model_config = ConfigDict(populate_by_name=True)

    step: str
    condition: str
    value: str
    logs: str | None = None
    failed: bool
    started_at: str = Field(alias="startedAt")
    ended_at: str = Field(alias="endedAt")

    @classmethod
    def from_record(cls, record: TestStepRecord) -> ReportValue:
        """Create from a step record."""
        return cls(
            step=record.step,
            condition=record.condition,
            value=record.observed_value,
            logs=record.attached_log,
            failed=record.failed,
            started_at=record.started_at.to_iso(),
            ended_at=record.ended_at.to_iso(),
        )


class ReportParams(BaseModel):
    """Parameters of ``insert_test_report``.

    Attributes:
        id: Board identity.
        report_type: Report type tag (serialized as ``type``).
        tester: Tester identity.
        values: Step results in execution order.
        started_at: ISO timestamp when the board test started.
        ended_at: ISO timestamp when the board test ended.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    report_type: str = Field(alias="type")
    tester: str
    values: list[ReportValue]
    started_at: str = Field(alias="startedAt")
    ended_at: str = Field(alias="endedAt")

    @classmethod
    def build(
        cls,
        report_type: str,
        board_id: str,
        tester_id: str,
        steps: Sequence[TestStepRecord],
        started_at: Timestamp,
        ended_at: Timestamp,
    ) -> ReportParams:
        """Create the parameters for one board."""
        return cls(
            id=board_id,
            report_type=report_type,
            tester=tester_id,
            values=[ReportValue.from_record(s) for s in steps],
            started_at=started_at.to_iso(),
            ended_at=ended_at.to_iso(),
        )


class RpcRequest(BaseModel):
    """RPC request envelope.

    Attributes:
        method: RPC method name.
        params: Method parameters.
    """

    method: str = INSERT_TEST_REPORT
    params: ReportParams

    def to_json_dict(self) -> dict:
        """Return the wire representation (camelCase keys)."""
        return self.model_dump(by_alias=True)

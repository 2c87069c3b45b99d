"""Report delivery interfaces consumed by the report outbox.

Protocols:
    ReportSink: Remote collector accepting one test report per call.
    FailureStore: Local persistence of undelivered reports.
"""

# pylint: disable=unnecessary-ellipsis  # Ellipsis required for Protocol method stubs

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from paneltest_core.types.board import TestStepRecord, UploadFailureRecord
from paneltest_core.types.common import Timestamp


class ReportSink(Protocol):
    """Remote collector for board test reports."""

    def upload(
        self,
        report_type: str,
        board_id: str,
        tester_id: str,
        steps: Sequence[TestStepRecord],
        started_at: Timestamp,
        ended_at: Timestamp,
    ) -> int:
        """Send one report.

        Returns:
            The HTTP status code. Callers treat non-2xx as a failure.

        Raises:
            UploadError: On transport failure.
        """
        ...


class FailureStore(Protocol):
    """Durable storage for the upload failure list."""

    def load(self) -> list[UploadFailureRecord]:
        """Return the persisted records; an empty list if none can be read."""
        ...

    def save(self, records: Sequence[UploadFailureRecord]) -> None:
        """Replace the persisted records with ``records``.

        Raises:
            PersistenceError: If the records cannot be written.
        """
        ...

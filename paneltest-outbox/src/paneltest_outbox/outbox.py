"""Durable outbox between the test worker and the report collector.

The worker enqueues finished boards without ever waiting on the network.
The uploader thread periodically drains the queue, makes one upload attempt
per board, and rewrites the local failure file with every board that could
not be delivered. The failure file survives restarts.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from paneltest_core.errors import PersistenceError
from paneltest_core.interfaces.reporting import FailureStore, ReportSink
from paneltest_core.types.board import Board, UploadFailureRecord
from paneltest_core.types.common import Timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleResult:
    """Summary of one drain cycle.

    Attributes:
        uploaded: Boards delivered successfully.
        failed: Boards added to the failure list.
        skipped: Unidentified boards that were dropped.
        retried: Previously failed boards delivered on retry.
    """

    uploaded: int = 0
    failed: int = 0
    skipped: int = 0
    retried: int = 0


class ReportOutbox:
    """Thread-safe report queue with a persistent failure list.

    By default the failure list is an audit log: boards in it are never sent
    again. With ``retry_failed`` every cycle also retries the persisted
    records and drops those that are delivered.

    Example:
        outbox = ReportOutbox(sink, JsonFailureStore("failed_reports.json"),
                              report_type="mainboard", tester_id="bench-1")
        threading.Thread(target=outbox.run, daemon=True).start()
        outbox.enqueue(outcome.board)
    """

    def __init__(
        self,
        sink: ReportSink,
        store: FailureStore,
        report_type: str,
        tester_id: str,
        interval_seconds: float = 5.0,
        retry_failed: bool = False,
    ) -> None:
        """Initialize the outbox and load the persisted failure list.

        Args:
            sink: Collector client.
            store: Failure list persistence.
            report_type: Report type tag sent with every report.
            tester_id: Identity of this tester station.
            interval_seconds: Pause between drain cycles in :meth:`run`.
            retry_failed: Retry persisted failures every cycle.
        """
        self._sink = sink
        self._store = store
        self._report_type = report_type
        self._tester_id = tester_id
        self._interval = interval_seconds
        self._retry_failed = retry_failed

        self._lock = threading.Lock()
        self._pending: list[Board] = []
        self._failures: list[UploadFailureRecord] = list(store.load())
        self._stop_event = threading.Event()

    @property
    def failures(self) -> tuple[UploadFailureRecord, ...]:
        """Return a snapshot of the in-memory failure list."""
        return tuple(self._failures)

    @property
    def pending_count(self) -> int:
        """Return the number of boards waiting for the next cycle."""
        with self._lock:
            return len(self._pending)

    def enqueue(self, board: Board) -> None:
        """Queue a finished board for upload. Never blocks on I/O."""
        with self._lock:
            self._pending.append(board)

    def drain(self) -> list[Board]:
        """Take every pending board, leaving the queue empty."""
        with self._lock:
            batch, self._pending = self._pending, []
        return batch

    def _upload(self, board: Board) -> str | None:
        """Make one upload attempt. Returns the failure reason, or None."""
        if board.id is None:
            return "Board has no id"
        ended_at = board.ended_at if board.ended_at is not None else Timestamp.now()
        try:
            status = self._sink.upload(
                self._report_type,
                board.id,
                self._tester_id,
                board.steps,
                board.started_at,
                ended_at,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Failed to upload report for %s: %s", board.id, e)
            return str(e)

        if not 200 <= status < 300:
            logger.error("Collector rejected report for %s: HTTP %d", board.id, status)
            return f"Collector returned HTTP {status}"

        logger.info("Uploaded report for %s", board.id)
        return None

    def run_cycle(self) -> CycleResult:
        """Drain the queue, upload each board once and persist failures.

        Returns:
            Counts for this cycle.
        """
        batch = self.drain()

        retried = 0
        if self._retry_failed and self._failures:
            still_failing: list[UploadFailureRecord] = []
            for record in self._failures:
                error = self._upload(record.board)
                if error is None:
                    retried += 1
                else:
                    still_failing.append(UploadFailureRecord(record.board, error))
            self._failures = still_failing

        uploaded = failed = skipped = 0
        for board in batch:
            if board.id is None:
                logger.warning(
                    "Skipping report without board id (started %s)", board.started_at.to_iso()
                )
                skipped += 1
                continue

            error = self._upload(board)
            if error is None:
                uploaded += 1
            else:
                self._failures.append(UploadFailureRecord(board, error))
                failed += 1

        # Rewritten every cycle so the file always mirrors the in-memory list
        self._persist()

        return CycleResult(uploaded=uploaded, failed=failed, skipped=skipped, retried=retried)

    def _persist(self) -> None:
        try:
            self._store.save(self._failures)
        except PersistenceError as e:
            # Keep the in-memory list; the next cycle writes it again
            logger.error("Failed to persist failure list: %s", e)

    def run(self) -> None:
        """Run drain cycles until :meth:`stop` is called.

        A final cycle runs after the stop request so queued boards are either
        delivered or persisted.
        """
        logger.info("Report uploader started (interval %.1fs)", self._interval)
        while not self._stop_event.is_set():
            self._run_cycle_logged()
            self._stop_event.wait(self._interval)
        self._run_cycle_logged()
        logger.info("Report uploader stopped")

    def _run_cycle_logged(self) -> None:
        try:
            result = self.run_cycle()
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("Upload cycle failed: %s", e)
            return
        if result != CycleResult():
            logger.info(
                "Upload cycle: %d uploaded, %d failed, %d skipped, %d retried",
                result.uploaded,
                result.failed,
                result.skipped,
                result.retried,
            )

    def stop(self) -> None:
        """Ask :meth:`run` to return after its current cycle."""
        self._stop_event.set()

"""HTTP client for the report collector.

Sends one ``insert_test_report`` RPC call per board over a synchronous
httpx client. The uploader thread is the only caller.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from paneltest_core.errors import UploadError
from paneltest_core.types.board import TestStepRecord
from paneltest_core.types.common import Timestamp

from paneltest_outbox.models import ReportParams, RpcRequest

logger = logging.getLogger(__name__)


class RpcReportSink:
    """Report sink posting to the collector's RPC endpoint.

    Example:
        >>> with RpcReportSink("https://reports.example/api/rpc", "secret") as sink:
        ...     status = sink.upload("mainboard", "AA:BB", "tester-1", steps, start, end)
    """

    def __init__(
        self,
        url: str,
        auth_token: str,
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the sink.

        Args:
            url: RPC endpoint URL.
            auth_token: Value of the ``authorization`` header.
            timeout: Request timeout in seconds.
            client: Optional httpx client (for testing).
        """
        self._url = url
        self._auth_token = auth_token
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def __enter__(self) -> "RpcReportSink":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this sink created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

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
            The HTTP status code of the collector's response.

        Raises:
            UploadError: If the request could not be sent.
        """
        request = RpcRequest(
            params=ReportParams.build(
                report_type, board_id, tester_id, steps, started_at, ended_at
            )
        )
        try:
            response = self._get_client().post(
                self._url,
                json=request.to_json_dict(),
                headers={"authorization": self._auth_token},
            )
        except httpx.HTTPError as e:
            raise UploadError(f"Failed to send report for {board_id}: {e}") from e

        logger.debug("Report for %s: HTTP %d", board_id, response.status_code)
        return response.status_code

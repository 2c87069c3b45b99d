"""Tests for the collector client and its wire models."""

from __future__ import annotations

import json

import httpx
import pytest

from paneltest_core.errors import UploadError
from paneltest_core.types.board import TestStepRecord
from paneltest_core.types.common import Timestamp
from paneltest_outbox.models import ReportParams
from paneltest_outbox.sink import RpcReportSink

URL = "https://localhost:3000/api/rpc"

STARTED = Timestamp.from_iso("2024-05-01T10:00:00.000000Z")
ENDED = Timestamp.from_iso("2024-05-01T10:00:30.250000Z")

STEPS = [
    TestStepRecord(
        step="Read MAC address",
        condition="MAC address should be readable",
        observed_value="AA:BB:CC:DD:EE:FF",
        attached_log="MAC: aa:bb:cc:dd:ee:ff",
        failed=False,
        started_at=STARTED,
        ended_at=ENDED,
    )
]


def make_sink(handler) -> RpcReportSink:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RpcReportSink(URL, "password", client=client)


class TestReportParams:
    """Tests for the report wire format."""

    def test_camel_case_keys(self) -> None:
        """Test the report serializes with the collector's field names."""
        params = ReportParams.build("mainboard", "AA:BB", "bench-1", STEPS, STARTED, ENDED)
        data = params.model_dump(by_alias=True)
        assert data == {
            "id": "AA:BB",
            "type": "mainboard",
            "tester": "bench-1",
            "values": [
                {
                    "step": "Read MAC address",
                    "condition": "MAC address should be readable",
                    "value": "AA:BB:CC:DD:EE:FF",
                    "logs": "MAC: aa:bb:cc:dd:ee:ff",
                    "failed": False,
                    "startedAt": "2024-05-01T10:00:00.000000Z",
                    "endedAt": "2024-05-01T10:00:30.250000Z",
                }
            ],
            "startedAt": "2024-05-01T10:00:00.000000Z",
            "endedAt": "2024-05-01T10:00:30.250000Z",
        }


class TestRpcReportSink:
    """Tests for RpcReportSink."""

    def test_upload_posts_rpc_request(self) -> None:
        """Test the request body, method and authorization header."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        status = make_sink(handler).upload("mainboard", "AA:BB", "bench-1", STEPS, STARTED, ENDED)

        assert status == 200
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == URL
        assert request.headers["authorization"] == "password"
        body = json.loads(request.content)
        assert body["method"] == "insert_test_report"
        assert body["params"]["id"] == "AA:BB"
        assert body["params"]["type"] == "mainboard"
        assert body["params"]["values"][0]["step"] == "Read MAC address"

    def test_error_status_is_returned(self) -> None:
        """Test non-2xx statuses are returned, not raised."""
        sink = make_sink(lambda request: httpx.Response(401))
        assert sink.upload("mainboard", "AA:BB", "bench-1", STEPS, STARTED, ENDED) == 401

    def test_transport_error_raises_upload_error(self) -> None:
        """Test connection failures become UploadError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UploadError, match="connection refused"):
            make_sink(handler).upload("mainboard", "AA:BB", "bench-1", STEPS, STARTED, ENDED)

    def test_close_keeps_injected_client(self) -> None:
        """Test close() leaves a caller-provided client open."""
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with RpcReportSink(URL, "password", client=client):
            pass
        assert not client.is_closed

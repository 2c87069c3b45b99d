"""Report delivery: collector client, failure persistence and the outbox."""

from paneltest_outbox.models import INSERT_TEST_REPORT, ReportParams, ReportValue, RpcRequest
from paneltest_outbox.outbox import CycleResult, ReportOutbox
from paneltest_outbox.sink import RpcReportSink
from paneltest_outbox.store import JsonFailureStore

__all__ = [
    # Models
    "INSERT_TEST_REPORT",
    "ReportParams",
    "ReportValue",
    "RpcRequest",
    # Delivery
    "CycleResult",
    "JsonFailureStore",
    "ReportOutbox",
    "RpcReportSink",
]

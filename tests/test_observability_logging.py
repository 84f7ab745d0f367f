import json
import logging
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from starlette.requests import Request
from starlette.responses import Response

from app.salon_reports.core.data_timing import (
    get_data_calls,
    get_data_time_ms,
    start_data_timer,
    stop_data_timer,
    timed_data_access,
)
from app.salon_reports.core.logging import log_json
from app.salon_reports.middleware.observability import build_request_log_payload


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/reports/sales_summary",
        "headers": [],
        "route": SimpleNamespace(path="/reports/{report_id}"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.tenant_id = "tenant-1"
    request.state.user_id = "user-1"
    request.state.role = "OWNER"
    request.state.error_code = None
    response = Response(status_code=200)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        data_time_ms=4.5678,
        data_calls=3,
    )

    assert payload["event"] == "http_request"
    assert payload["trace_id"] == "trace-1"
    assert payload["tenant_id"] == "tenant-1"
    assert payload["role"] == "OWNER"
    assert payload["route"] == "/reports/{report_id}"
    assert payload["method"] == "GET"
    assert payload["status_code"] == 200
    assert payload["latency_ms"] == 12.35
    assert payload["data_time_ms"] == 4.57
    assert payload["data_calls"] == 3


def test_payload_without_response_reports_server_error():
    request = Request({"type": "http", "method": "GET", "path": "/health", "headers": []})
    payload = build_request_log_payload(request=request, response=None, latency_ms=1.0, data_time_ms=None)
    assert payload["status_code"] == 500
    assert payload["route"] == "/health"
    assert payload["data_time_ms"] is None


def test_data_timer_accumulates_only_while_started():
    with timed_data_access():
        pass
    assert get_data_time_ms() is None

    token = start_data_timer()
    try:
        with timed_data_access():
            pass
        with timed_data_access():
            pass
        assert get_data_calls() == 2
        assert get_data_time_ms() >= 0
    finally:
        stop_data_timer(token)
    assert get_data_time_ms() is None


def test_log_json_serializes_decimals_and_dates(caplog):
    logger = logging.getLogger("salon_reports.test")
    caplog.set_level(logging.INFO, logger="salon_reports.test")
    log_json(logger, {"event": "report_run", "amount": Decimal("1.50"), "day": date(2024, 3, 4)})
    payload = json.loads(caplog.records[-1].getMessage())
    assert payload == {"event": "report_run", "amount": "1.50", "day": "2024-03-04"}


def test_request_log_emitted_with_trace_id(client, caplog):
    caplog.set_level(logging.INFO, logger="salon_reports.request")
    response = client.get("/health", headers={"X-Trace-ID": "trace-abc"})
    assert response.headers["X-Trace-ID"] == "trace-abc"
    events = [json.loads(record.getMessage()) for record in caplog.records if record.name == "salon_reports.request"]
    assert events[-1]["trace_id"] == "trace-abc"
    assert events[-1]["status_code"] == 200

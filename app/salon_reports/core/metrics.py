from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.salon_reports.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self) -> None:
        self.enabled = bool(settings.METRICS_ENABLED)
        self._registry = None
        self._http_requests_total = None
        self._http_request_duration_ms = None
        self._report_runs_total = None
        self._report_access_denied_total = None
        self._reconciliation_variance_total = None
        self._data_unavailable_total = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._report_runs_total = Counter(
            "report_runs_total",
            "Report runs by report id and outcome.",
            ["report_id", "outcome"],
            registry=self._registry,
        )
        self._report_access_denied_total = Counter(
            "report_access_denied_total",
            "Report requests rejected by the access resolver.",
            registry=self._registry,
        )
        self._reconciliation_variance_total = Counter(
            "reconciliation_variance_total",
            "Financial reports generated with an unbalanced reconciliation.",
            ["report_id"],
            registry=self._registry,
        )
        self._data_unavailable_total = Counter(
            "data_unavailable_total",
            "Report data fetches that failed or timed out.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def record_report_run(self, *, report_id: str, outcome: str) -> None:
        if not self.enabled:
            return
        self._report_runs_total.labels(report_id=report_id, outcome=outcome).inc()

    def increment_access_denied(self) -> None:
        if not self.enabled:
            return
        self._report_access_denied_total.inc()

    def increment_reconciliation_variance(self, report_id: str) -> None:
        if not self.enabled:
            return
        self._reconciliation_variance_total.labels(report_id=report_id).inc()

    def increment_data_unavailable(self) -> None:
        if not self.enabled:
            return
        self._data_unavailable_total.inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()

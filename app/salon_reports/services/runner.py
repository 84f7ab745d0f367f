from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Sequence

from app.salon_reports.core.config import settings
from app.salon_reports.core.context import CallerScope
from app.salon_reports.core.data_timing import get_data_calls, get_data_time_ms
from app.salon_reports.core.error_catalog import AppError, ErrorCatalog
from app.salon_reports.core.logging import log_json
from app.salon_reports.core.metrics import metrics
from app.salon_reports.schemas.reports import ReportDocument, ReportRequest
from app.salon_reports.services import documents
from app.salon_reports.services.access import authorize
from app.salon_reports.services.builders import REPORT_BUILDERS, BuildContext, ReportBuilder
from app.salon_reports.services.catalog import ReportDefinition, Role
from app.salon_reports.services.fetch import FetchPlan, fetch_location_bundles, load_locations
from app.salon_reports.services.metrics import available_minutes
from app.salon_reports.services.periods import ReportPeriod, resolve_period, resolve_timezone, validate_period
from app.salon_reports.services.records import LocationRecord, ReportDataSource

logger = logging.getLogger("salon_reports.runner")

OUTCOME_OK = "ok"


class ReportRunner:
    """Runs one report request end to end for an authenticated caller.

    Every check that can reject the request (catalog, role, payroll gate,
    date range, timezone, location scope, employee filter) happens before the
    data source is touched. The franchisee filter needs the location records,
    so it is checked right after they load and before any report data is
    fetched. Data for the in-scope locations is then fetched concurrently and
    handed to the report's section builder.
    """

    def __init__(self, source: ReportDataSource, *, clock=None) -> None:
        self.source = source
        self._clock = clock

    async def run(
        self,
        request: ReportRequest,
        caller: CallerScope,
        timeout: float | None = None,
    ) -> ReportDocument:
        started = time.perf_counter()
        location_count = 0
        try:
            definition, builder, period, location_ids, employee_id = self._prepare(request, caller)
            locations = await self._load_locations(location_ids, caller, request.franchisee_id)
            location_count = len(locations)
            document = await self._build(
                definition,
                builder,
                request,
                period,
                locations,
                employee_id=employee_id,
                timeout=timeout,
            )
        except AppError as exc:
            self._record(request, caller, outcome=exc.error.code, started=started, location_count=location_count)
            raise
        self._record(request, caller, outcome=OUTCOME_OK, started=started, location_count=location_count)
        return document

    def _prepare(
        self, request: ReportRequest, caller: CallerScope
    ) -> tuple[ReportDefinition, ReportBuilder, ReportPeriod, list[str], str | None]:
        definition = authorize(request.report_id, caller.role, caller.payroll_permission)
        builder = REPORT_BUILDERS.get(definition.report_id)
        if builder is None:
            raise AppError(
                ErrorCatalog.INVALID_REQUEST,
                details={
                    "message": "report is not available yet",
                    "reason_code": "REPORT_NOT_AVAILABLE",
                    "report_id": definition.report_id,
                },
            )

        tz = resolve_timezone(request.timezone or settings.REPORTS_DEFAULT_TIMEZONE)
        period = resolve_period(request.date_from, request.date_to, tz)
        validate_period(period, max_days=settings.REPORTS_MAX_DATE_RANGE_DAYS)

        location_ids = resolve_location_scope(request.location_ids, caller, self_service=definition.is_self_service)
        if builder.single_location and len(location_ids) != 1:
            raise AppError(
                ErrorCatalog.INVALID_REQUEST,
                details={
                    "message": "exactly one location is required",
                    "reason_code": "SINGLE_LOCATION_REQUIRED",
                    "location_count": len(location_ids),
                },
            )
        employee_id = resolve_employee_scope(request.employee_id, caller, self_service=definition.is_self_service)
        if employee_id and not builder.employee_filter:
            raise AppError(
                ErrorCatalog.INVALID_REQUEST,
                details={
                    "message": "report does not support an employee filter",
                    "reason_code": "EMPLOYEE_FILTER_NOT_SUPPORTED",
                    "report_id": definition.report_id,
                },
            )
        return definition, builder, period, location_ids, employee_id

    async def _load_locations(
        self,
        location_ids: Sequence[str],
        caller: CallerScope,
        franchisee_id: str | None,
    ) -> list[LocationRecord]:
        if not location_ids:
            return []
        locations = await load_locations(self.source, location_ids)
        found = {location.id for location in locations if location.tenant_id == caller.tenant_id}
        missing = [location_id for location_id in location_ids if location_id not in found]
        if missing:
            raise AppError(
                ErrorCatalog.SCOPE_VIOLATION,
                details={"message": "location not found for tenant", "location_ids": missing},
            )
        if franchisee_id:
            locations = [location for location in locations if location.franchise_id == franchisee_id]
            if not locations:
                raise AppError(
                    ErrorCatalog.SCOPE_VIOLATION,
                    details={
                        "message": "no location in scope belongs to franchisee",
                        "reason_code": "FRANCHISEE_OUT_OF_SCOPE",
                        "franchisee_id": franchisee_id,
                    },
                )
        return locations

    async def _build(
        self,
        definition: ReportDefinition,
        builder: ReportBuilder,
        request: ReportRequest,
        period: ReportPeriod,
        locations: Sequence[LocationRecord],
        *,
        employee_id: str | None,
        timeout: float | None,
    ) -> ReportDocument:
        plan = FetchPlan(
            start_utc=period.start_utc,
            end_utc=period.end_utc,
            employees=builder.employees or employee_id is not None,
            appointments=builder.appointments,
            transactions=builder.transactions,
            drawer_sessions=builder.drawer_sessions,
        )
        bundles = await fetch_location_bundles(self.source, locations, plan, timeout=timeout)
        capacity = available_minutes(
            period.date_from,
            period.date_to,
            hours_per_day=settings.UTILIZATION_HOURS_PER_DAY,
            minutes_per_hour=settings.UTILIZATION_MINUTES_PER_HOUR,
            weekdays=settings.working_weekdays,
        )
        context = BuildContext(
            definition=definition,
            request=request,
            period=period,
            tz=resolve_timezone(period.timezone_name),
            bundles=bundles,
            capacity_minutes=capacity,
            employee_id=employee_id,
            ledger_max_rows=settings.LEDGER_MAX_ROWS,
            top_items_limit=settings.TOP_ITEMS_LIMIT,
        )
        result = builder.build(context)

        if definition.is_financial and result.reconciliation is not None and not result.reconciliation.is_balanced:
            metrics.increment_reconciliation_variance(definition.report_id)
            log_json(
                logger,
                {
                    "event": "reconciliation_variance",
                    "report_id": definition.report_id,
                    "expected_net": result.reconciliation.expected_net,
                    "net_sales": result.reconciliation.net_sales,
                    "variance": result.reconciliation.variance,
                    "tender_variance": result.reconciliation.tender_variance,
                },
                level=logging.WARNING,
            )

        employee_label = None
        if employee_id:
            employee_label = context.employee_names.get(employee_id, employee_id)
        display_filters = {
            "Franchisee": request.franchisee_id,
            "Employee": employee_label,
            **request.filters,
        }
        return documents.assemble(
            definition,
            request,
            result.sections,
            result.reconciliation,
            location_names=[bundle.location.name for bundle in bundles],
            display_filters=display_filters,
            generated_at=self._now(),
        )

    def _now(self) -> datetime | None:
        return self._clock() if self._clock is not None else None

    def _record(
        self,
        request: ReportRequest,
        caller: CallerScope,
        *,
        outcome: str,
        started: float,
        location_count: int,
    ) -> None:
        metrics.record_report_run(report_id=request.report_id, outcome=outcome)
        data_ms = get_data_time_ms()
        log_json(
            logger,
            {
                "event": "report_run",
                "trace_id": caller.trace_id,
                "tenant_id": caller.tenant_id,
                "report_id": request.report_id,
                "role": caller.role.value,
                "outcome": outcome,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "data_ms": round(data_ms, 2) if data_ms is not None else None,
                "data_calls": get_data_calls(),
                "location_count": location_count,
            },
            level=logging.INFO if outcome == OUTCOME_OK else logging.WARNING,
        )


def resolve_location_scope(
    requested: Sequence[str],
    caller: CallerScope,
    *,
    self_service: bool = False,
) -> list[str]:
    """Requested locations narrowed to the caller's scope.

    An empty request means every location the caller may see. Asking for a
    location outside that scope is rejected rather than silently dropped.
    """
    allowed = list(caller.location_ids)
    if not requested:
        if not allowed and not self_service:
            raise AppError(
                ErrorCatalog.SCOPE_VIOLATION,
                details={"message": "caller has no locations in scope"},
            )
        return allowed
    outside = [location_id for location_id in requested if location_id not in allowed]
    if outside:
        raise AppError(
            ErrorCatalog.SCOPE_VIOLATION,
            details={"message": "location outside caller scope", "location_ids": outside},
        )
    return list(requested)


def resolve_employee_scope(
    requested: str | None,
    caller: CallerScope,
    *,
    self_service: bool = False,
) -> str | None:
    if not self_service and caller.role != Role.EMPLOYEE:
        return requested
    if not caller.employee_id:
        raise AppError(
            ErrorCatalog.ACCESS_DENIED,
            details={"message": "employee identity required"},
        )
    if requested and requested != caller.employee_id:
        raise AppError(
            ErrorCatalog.SCOPE_VIOLATION,
            details={"message": "employee outside caller scope", "employee_id": requested},
        )
    return caller.employee_id

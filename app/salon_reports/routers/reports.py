from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Request, Response

from app.salon_reports.core.context import CallerScope
from app.salon_reports.core.deps import get_report_data_source, require_caller_scope
from app.salon_reports.schemas.reports import (
    ReportCatalogEntry,
    ReportCatalogResponse,
    ReportDocument,
    ReportRequest,
)
from app.salon_reports.services.access import available_reports
from app.salon_reports.services.exports import checksum_bytes, export_filename, render_document_csv
from app.salon_reports.services.runner import ReportRunner

router = APIRouter()

FILTER_PREFIX = "filter."


def _free_form_filters(request: Request) -> dict[str, str]:
    filters = {}
    for key, value in request.query_params.multi_items():
        if key.startswith(FILTER_PREFIX) and len(key) > len(FILTER_PREFIX) and value:
            filters[key[len(FILTER_PREFIX):]] = value
    return filters


def _report_request(
    request: Request,
    report_id: str,
    from_value: date,
    to_value: date,
    location_ids: str | None,
    franchisee_id: str | None,
    employee_id: str | None,
    timezone: str | None,
) -> ReportRequest:
    return ReportRequest(
        report_id=report_id,
        date_from=from_value,
        date_to=to_value,
        location_ids=location_ids,
        franchisee_id=franchisee_id,
        employee_id=employee_id,
        filters=_free_form_filters(request),
        timezone=timezone,
    )


@router.get("/reports/catalog", response_model=ReportCatalogResponse)
def report_catalog(caller: CallerScope = Depends(require_caller_scope)):
    reports = available_reports(caller.role, caller.payroll_permission)
    return ReportCatalogResponse(
        role=caller.role.value,
        payroll_permission=caller.payroll_permission,
        reports=[
            ReportCatalogEntry(
                report_id=definition.report_id,
                display_name=definition.display_name,
                priority=definition.priority.value,
                category=definition.category,
                requires_payroll_permission=definition.requires_payroll_permission,
                orientation=definition.orientation.value,
            )
            for definition in reports
        ],
    )


@router.get("/reports/{report_id}", response_model=ReportDocument)
async def run_report(
    request: Request,
    report_id: str,
    from_value: date = Query(..., alias="from"),
    to_value: date = Query(..., alias="to"),
    location_ids: str | None = Query(None),
    franchisee_id: str | None = Query(None),
    employee_id: str | None = Query(None),
    timezone: str | None = Query(None),
    caller: CallerScope = Depends(require_caller_scope),
    source=Depends(get_report_data_source),
):
    report_request = _report_request(
        request, report_id, from_value, to_value, location_ids, franchisee_id, employee_id, timezone
    )
    return await ReportRunner(source).run(report_request, caller)


@router.get("/reports/{report_id}/csv")
async def export_report_csv(
    request: Request,
    report_id: str,
    from_value: date = Query(..., alias="from"),
    to_value: date = Query(..., alias="to"),
    location_ids: str | None = Query(None),
    franchisee_id: str | None = Query(None),
    employee_id: str | None = Query(None),
    timezone: str | None = Query(None),
    caller: CallerScope = Depends(require_caller_scope),
    source=Depends(get_report_data_source),
):
    report_request = _report_request(
        request, report_id, from_value, to_value, location_ids, franchisee_id, employee_id, timezone
    )
    document = await ReportRunner(source).run(report_request, caller)
    content = render_document_csv(document)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(document)}"',
            "X-Content-SHA256": checksum_bytes(content),
        },
    )

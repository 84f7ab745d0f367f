from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from app.salon_reports.core.config import settings
from app.salon_reports.schemas.reports import (
    DocumentFooter,
    DocumentHeader,
    DocumentSection,
    ReconciliationBlock,
    ReportDocument,
    ReportRequest,
)
from app.salon_reports.services.catalog import REPORT_DEFINITIONS, ReportDefinition
from app.salon_reports.services.periods import resolve_timezone, timezone_label
from app.salon_reports.services.reconciliation import ReconciliationSnapshot


def location_label(names: Sequence[str], *, max_names: int | None = None) -> str:
    limit = settings.LOCATION_LABEL_MAX_NAMES if max_names is None else max_names
    if len(names) > limit:
        return f"All ({len(names)} locations)"
    return ", ".join(names) or "All Locations"


def filter_summary(filters: Mapping[str, str | None]) -> str:
    parts = [f"{key}: {value}" for key, value in filters.items() if value]
    return " | ".join(parts) or "None"


def section(
    title: str,
    columns: Sequence[str],
    rows: Iterable[Mapping[str, Any]],
    *,
    note: str | None = None,
) -> DocumentSection:
    return DocumentSection(
        title=title,
        columns=list(columns),
        rows=[{column: row.get(column) for column in columns} for row in rows],
        note=note,
    )


def key_value_section(title: str, pairs: Iterable[tuple[str, Any]]) -> DocumentSection:
    return section(title, ["metric", "value"], ({"metric": key, "value": value} for key, value in pairs))


def reconciliation_block(snapshot: ReconciliationSnapshot) -> ReconciliationBlock:
    return ReconciliationBlock(
        gross_sales=snapshot.gross_sales,
        refunds=snapshot.refunds,
        voids=snapshot.voids,
        discounts=snapshot.discounts,
        net_sales=snapshot.net_sales,
        tax=snapshot.tax,
        tips=snapshot.tips,
        tender_cash=snapshot.tender_cash,
        tender_card=snapshot.tender_card,
        tender_gift=snapshot.tender_gift,
        expected_net=snapshot.expected_net,
        variance=snapshot.variance,
        tender_expected=snapshot.tender_expected,
        tender_variance=snapshot.tender_variance,
        status=snapshot.status,
    )


def footer() -> DocumentFooter:
    return DocumentFooter(definitions=dict(REPORT_DEFINITIONS), version=settings.REPORT_FORMAT_VERSION)


def assemble(
    definition: ReportDefinition,
    request: ReportRequest,
    sections: Sequence[DocumentSection],
    reconciliation: ReconciliationSnapshot | None = None,
    *,
    location_names: Sequence[str] = (),
    display_filters: Mapping[str, str | None] | None = None,
    generated_at: datetime | None = None,
) -> ReportDocument:
    tz_name = request.timezone or settings.REPORTS_DEFAULT_TIMEZONE
    tz = resolve_timezone(tz_name)
    generated = (generated_at or datetime.now(timezone.utc)).astimezone(tz)
    header = DocumentHeader(
        report_id=definition.report_id,
        report_name=definition.display_name,
        category=definition.category,
        orientation=definition.orientation.value,
        date_from=request.date_from,
        date_to=request.date_to,
        locations=list(location_names),
        location_label=location_label(location_names),
        filter_summary=filter_summary(request.filters if display_filters is None else display_filters),
        generated_at=generated,
        timezone=tz_name,
        timezone_label=timezone_label(tz_name),
    )
    block = None
    if definition.is_financial and reconciliation is not None:
        block = reconciliation_block(reconciliation)
    return ReportDocument(header=header, sections=list(sections), reconciliation=block, footer=footer())

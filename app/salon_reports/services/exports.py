from __future__ import annotations

import csv
import hashlib
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from app.salon_reports.schemas.reports import DocumentSection, ReportDocument

Z_REPORT_ID = "shift_close_z_report"
Z_REPORT_SECTIONS = ("Summary", "Cash Reconciliation", "Tax Summary", "Top Selling Items")
Z_REPORT_ITEM_LABELS = {"name": "Item", "quantity": "Qty", "sales": "Sales"}

KEY_VALUE_COLUMNS = ["metric", "value"]


def _format_cell(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        value = Decimal(str(value))
    if isinstance(value, Decimal):
        return format(value.quantize(Decimal("0.01")), "f")
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def column_label(column: str) -> str:
    return column.replace("_", " ").title()


def is_key_value(section: DocumentSection) -> bool:
    return section.columns == KEY_VALUE_COLUMNS


def _write_section(
    writer: Any,
    section: DocumentSection,
    *,
    labels: dict[str, str] | None = None,
) -> None:
    writer.writerow([section.title.upper()])
    if is_key_value(section):
        for row in section.rows:
            writer.writerow([row.get("metric"), _format_cell(row.get("value"))])
    else:
        labels = labels or {}
        writer.writerow([labels.get(column, column_label(column)) for column in section.columns])
        for row in section.rows:
            writer.writerow([_format_cell(row.get(column)) for column in section.columns])
    if section.note:
        writer.writerow([section.note])


def _write_sections(writer: Any, sections: Iterable[tuple[DocumentSection, dict[str, str] | None]]) -> None:
    for index, (section, labels) in enumerate(sections):
        if index:
            writer.writerow([])
        _write_section(writer, section, labels=labels)


def render_z_report_csv(document: ReportDocument) -> bytes:
    """Shift close layout: four titled blocks, nothing else."""
    by_title = {section.title: section for section in document.sections}
    ordered = []
    for title in Z_REPORT_SECTIONS:
        section = by_title.get(title)
        if section is None:
            continue
        labels = Z_REPORT_ITEM_LABELS if title == "Top Selling Items" else None
        ordered.append((section, labels))
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    _write_sections(writer, ordered)
    return buffer.getvalue().encode("utf-8")


def render_document_csv(document: ReportDocument) -> bytes:
    if document.header.report_id == Z_REPORT_ID:
        return render_z_report_csv(document)
    header = document.header
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([header.report_name])
    writer.writerow(["Period", f"{header.date_from.isoformat()} to {header.date_to.isoformat()}"])
    writer.writerow(["Locations", header.location_label])
    writer.writerow(["Filters", header.filter_summary])
    writer.writerow(["Generated", f"{header.generated_at.isoformat()} ({header.timezone_label})"])
    writer.writerow([])
    _write_sections(writer, ((section, None) for section in document.sections))
    block = document.reconciliation
    if block is not None:
        writer.writerow([])
        writer.writerow(["RECONCILIATION"])
        for key, value in block.model_dump().items():
            writer.writerow([column_label(key), _format_cell(value)])
    writer.writerow([])
    writer.writerow([f"Format {document.footer.version}"])
    return buffer.getvalue().encode("utf-8")


def export_filename(document: ReportDocument) -> str:
    header = document.header
    return f"{header.report_id}_{header.date_from.isoformat()}_{header.date_to.isoformat()}.csv"


def checksum_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()

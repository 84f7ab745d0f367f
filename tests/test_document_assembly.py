from datetime import date, datetime, timezone

from app.salon_reports.schemas.reports import ReportRequest
from app.salon_reports.services.catalog import REPORT_CATALOG, REPORT_DEFINITIONS
from app.salon_reports.services.documents import (
    assemble,
    filter_summary,
    key_value_section,
    location_label,
    section,
)
from app.salon_reports.services.periods import timezone_label
from app.salon_reports.services.reconciliation import reconcile


def _request(report_id="sales_summary", **overrides):
    values = {
        "report_id": report_id,
        "date_from": date(2024, 3, 1),
        "date_to": date(2024, 3, 31),
        "timezone": "America/New_York",
    }
    values.update(overrides)
    return ReportRequest(**values)


def test_location_label_variants():
    assert location_label([]) == "All Locations"
    assert location_label(["Downtown"]) == "Downtown"
    assert location_label(["A", "B", "C"]) == "A, B, C"
    assert location_label(["A", "B", "C", "D"]) == "All (4 locations)"


def test_filter_summary_skips_empty_values():
    assert filter_summary({}) == "None"
    assert filter_summary({"Franchisee": None, "Employee": ""}) == "None"
    assert filter_summary({"Franchisee": "fr-1", "Employee": "Ann", "service": "Color"}) == (
        "Franchisee: fr-1 | Employee: Ann | service: Color"
    )


def test_timezone_label():
    assert timezone_label("America/Los_Angeles") == "Los Angeles"
    assert timezone_label("Europe/London") == "Europe/London"


def test_request_location_ids_are_split_and_deduplicated():
    request = _request(location_ids="loc-2, loc-1,loc-2,,")
    assert request.location_ids == ("loc-2", "loc-1")
    assert request.cache_key() == (
        "sales_summary",
        date(2024, 3, 1),
        date(2024, 3, 31),
        ("loc-1", "loc-2"),
        (),
    )


def test_financial_document_carries_reconciliation():
    definition = REPORT_CATALOG["sales_summary"]
    snapshot = reconcile(gross_sales=1000, refunds=50, voids=25, discounts=100, net_sales=825)
    sections = [
        key_value_section("Sales Summary", [("Gross Sales", snapshot.gross_sales)]),
        section("Sales by Day", ["date", "net_sales"], [{"date": date(2024, 3, 1), "net_sales": 1, "extra": 2}]),
    ]
    generated = datetime(2024, 4, 1, 15, 0, tzinfo=timezone.utc)
    document = assemble(
        definition,
        _request(),
        sections,
        snapshot,
        location_names=["Downtown", "Uptown"],
        generated_at=generated,
    )
    header = document.header
    assert header.report_name == "Sales Summary"
    assert header.date_from == date(2024, 3, 1)
    assert header.date_to == date(2024, 3, 31)
    assert header.location_label == "Downtown, Uptown"
    assert header.filter_summary == "None"
    assert header.generated_at.hour == 11
    assert header.timezone_label == "New York"
    assert [item.title for item in document.sections] == ["Sales Summary", "Sales by Day"]
    assert document.sections[1].rows == [{"date": date(2024, 3, 1), "net_sales": 1}]
    assert document.reconciliation is not None
    assert document.reconciliation.status == "BALANCED"
    assert document.reconciliation.tender_variance is None
    assert document.footer.version == "v1.0"
    assert document.footer.definitions == dict(REPORT_DEFINITIONS)


def test_reconciliation_block_carries_tender_check():
    snapshot = reconcile(gross_sales=100, refunds=0, voids=0, discounts=0, net_sales=100, tax=8, tender_card=100)
    document = assemble(REPORT_CATALOG["sales_summary"], _request(), [], snapshot)
    block = document.reconciliation
    assert block.tender_expected == snapshot.tender_expected
    assert str(block.tender_variance) == "8.00"
    assert block.status == "VARIANCE"


def test_non_financial_document_omits_reconciliation():
    definition = REPORT_CATALOG["staff_performance"]
    snapshot = reconcile(gross_sales=10, refunds=0, voids=0, discounts=0, net_sales=10)
    document = assemble(definition, _request("staff_performance"), [], snapshot)
    assert document.reconciliation is None
    assert document.header.location_label == "All Locations"


def test_display_filters_override_request_filters():
    definition = REPORT_CATALOG["sales_summary"]
    document = assemble(
        definition,
        _request(filters={"service": "Color"}),
        [],
        display_filters={"Franchisee": "fr-9", "service": "Color"},
    )
    assert document.header.filter_summary == "Franchisee: fr-9 | service: Color"

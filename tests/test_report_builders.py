from datetime import date
from decimal import Decimal
from zoneinfo import ZoneInfo

from app.salon_reports.schemas.reports import ReportRequest
from app.salon_reports.services.builders import REPORT_BUILDERS, BuildContext
from app.salon_reports.services.catalog import REPORT_CATALOG, all_reports
from app.salon_reports.services.fetch import LocationBundle
from app.salon_reports.services.periods import resolve_period
from tests.report_helpers import (
    appointment,
    drawer_session,
    employee,
    location,
    transaction,
    utc,
)

TZ = ZoneInfo("America/Chicago")
UNBUILT = {"go_live_status", "exceptions_alerts", "customer_growth", "service_category_performance", "timeclock_attendance"}


def _context(report_id, bundles, *, date_from=date(2024, 3, 4), date_to=date(2024, 3, 4), employee_id=None, **kwargs):
    return BuildContext(
        definition=REPORT_CATALOG[report_id],
        request=ReportRequest(report_id=report_id, date_from=date_from, date_to=date_to),
        period=resolve_period(date_from, date_to, TZ),
        tz=TZ,
        bundles=bundles,
        capacity_minutes=480,
        employee_id=employee_id,
        **kwargs,
    )


def _downtown(**overrides):
    values = {
        "location": location(),
        "employees": (employee("ann"), employee("ben")),
        "appointments": (
            appointment("ann", start=utc(2024, 3, 4, 15)),
            appointment("ann", "NO_SHOW", start=utc(2024, 3, 4, 17), client_id="client-2"),
            appointment("ben", "CANCELLED", start=utc(2024, 3, 4, 16)),
        ),
        "transactions": (
            transaction("ann", "108.00", tax="8.00", tip="10.00", payment_method="CASH", client_id="vip", items=[("Cut", 1, 90)]),
            transaction("ben", "54.00", tax="4.00", tip="5.00", client_id="vip", items=[("Color", 2, 45)]),
            transaction("ben", "30.00", client_id="other", items=[("Cut", 1, 30)]),
            transaction("ann", "25.00", status="REFUNDED", client_id="vip"),
        ),
    }
    values.update(overrides)
    return LocationBundle(**values)


def _pairs(section):
    return {row["metric"]: row["value"] for row in section.rows}


def test_every_report_has_a_builder_except_unbuilt():
    catalog_ids = {definition.report_id for definition in all_reports()}
    assert set(REPORT_BUILDERS) == catalog_ids - UNBUILT


def test_only_location_360_is_single_location():
    assert {report_id for report_id, builder in REPORT_BUILDERS.items() if builder.single_location} == {"location_360"}


def test_appointments_summary_counts_by_day():
    result = REPORT_BUILDERS["appointments_summary"].build(_context("appointments_summary", [_downtown()]))
    totals = _pairs(result.sections[0])
    assert totals["Total Booked"] == 3
    assert totals["No-Shows"] == 1
    assert totals["Cancellations"] == 1
    assert totals["No-Show Rate %"] == 33
    assert result.sections[1].rows == [
        {"date": date(2024, 3, 4), "booked": 3, "completed": 1, "no_shows": 1, "cancelled": 1}
    ]


def test_no_show_cancellation_lists_missed_in_time_order():
    result = REPORT_BUILDERS["no_show_cancellation"].build(_context("no_show_cancellation", [_downtown()]))
    missed = result.sections[1].rows
    assert [row["status"] for row in missed] == ["CANCELLED", "NO_SHOW"]
    assert missed[0]["time"] == "10:00"
    assert missed[0]["stylist"] == "Ben"


def test_my_appointments_only_shows_own_bookings():
    result = REPORT_BUILDERS["my_appointments"].build(_context("my_appointments", [_downtown()], employee_id="ann"))
    assert {row["stylist"] for row in result.sections[0].rows} == {"Ann"}
    assert len(result.sections[0].rows) == 2


def test_daily_sales_summary_has_one_row_per_day():
    ctx = _context("daily_sales_summary", [_downtown()], date_to=date(2024, 3, 6))
    result = REPORT_BUILDERS["daily_sales_summary"].build(ctx)
    days = result.sections[1].rows
    assert [row["date"] for row in days] == [date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 6)]
    assert days[0]["transactions"] == 3
    assert days[1]["gross_sales"] == Decimal("0.00")
    assert result.reconciliation is not None


def test_tax_collected_by_location():
    result = REPORT_BUILDERS["tax_collected_summary"].build(_context("tax_collected_summary", [_downtown()]))
    row = result.sections[0].rows[0]
    assert row["tax_collected"] == Decimal("12.00")
    assert row["taxable_sales"] == Decimal("165.00")
    assert _pairs(result.sections[1])["Tax Collected"] == Decimal("12.00")


def test_refund_void_audit_flags_returns():
    result = REPORT_BUILDERS["refund_void_audit"].build(_context("refund_void_audit", [_downtown()]))
    summary = _pairs(result.sections[0])
    assert summary["Refunds"] == 1
    assert summary["Refund Amount"] == Decimal("25.00")
    assert [row["status"] for row in result.sections[1].rows] == ["REFUNDED"]


def test_tips_summary_splits_cash_and_card():
    result = REPORT_BUILDERS["tips_summary"].build(_context("tips_summary", [_downtown()]))
    totals = _pairs(result.sections[0])
    assert totals["Cash Tips"] == Decimal("10.00")
    assert totals["Card Tips"] == Decimal("5.00")
    assert totals["Total Tips"] == Decimal("15.00")
    assert [row["name"] for row in result.sections[1].rows] == ["Ann", "Ben"]


def test_cash_drawer_variance_per_session():
    bundle = _downtown(drawer_sessions=(drawer_session(starting="100", ending="200", closed_at=utc(2024, 3, 4, 23)),))
    result = REPORT_BUILDERS["cash_drawer_variance"].build(_context("cash_drawer_variance", [bundle]))
    row = result.sections[1].rows[0]
    assert row["cash_sales"] == Decimal("108.00")
    assert row["expected"] == Decimal("208.00")
    assert row["variance"] == Decimal("-8.00")
    assert row["status"] == "VARIANCE"
    assert _pairs(result.sections[0])["Sessions with Variance"] == 1


def test_top_services_ranked_by_sales():
    result = REPORT_BUILDERS["top_services"].build(_context("top_services", [_downtown()]))
    assert result.sections[0].rows == [
        {"name": "Cut", "quantity": 2, "sales": Decimal("120.00")},
        {"name": "Color", "quantity": 2, "sales": Decimal("45.00")},
    ]


def test_vip_customers_ranked_by_spend():
    result = REPORT_BUILDERS["vip_customers"].build(_context("vip_customers", [_downtown()]))
    rows = result.sections[0].rows
    assert rows[0]["client_id"] == "vip"
    assert rows[0]["visits"] == 2
    assert rows[0]["spend"] == Decimal("162.00")
    assert rows[0]["last_visit"] == date(2024, 3, 4)


def test_brand_summary_and_leaderboard():
    uptown = LocationBundle(
        location=location("loc-2", "Uptown"),
        employees=(employee("cat", location_id="loc-2"),),
        transactions=(transaction("cat", "500.00", location_id="loc-2"),),
    )
    bundles = [_downtown(), uptown]
    brand = REPORT_BUILDERS["brand_performance_summary"].build(_context("brand_performance_summary", bundles))
    summary = _pairs(brand.sections[0])
    assert summary["Locations"] == 2
    assert summary["Active Stylists"] == 3
    assert [row["name"] for row in brand.sections[1].rows] == ["Uptown", "Downtown"]

    board = REPORT_BUILDERS["location_leaderboard"].build(_context("location_leaderboard", bundles))
    assert [(row["rank"], row["name"]) for row in board.sections[0].rows] == [(1, "Uptown"), (2, "Downtown")]


def test_stylist_utilization_notes_capacity():
    result = REPORT_BUILDERS["stylist_utilization"].build(_context("stylist_utilization", [_downtown()]))
    assert result.sections[0].note == "Available minutes per stylist: 480"
    assert {row["name"] for row in result.sections[0].rows} == {"Ann", "Ben"}


def test_my_sales_lists_own_items():
    result = REPORT_BUILDERS["my_sales"].build(_context("my_sales", [_downtown()], employee_id="ben"))
    assert [row["name"] for row in result.sections[0].rows] == ["Ben"]
    assert {row["name"] for row in result.sections[1].rows} == {"Color", "Cut"}


def _two_locations():
    uptown = LocationBundle(
        location=location("loc-2", "Uptown"),
        employees=(employee("cat", location_id="loc-2"),),
        transactions=(transaction("cat", "500.00", location_id="loc-2"),),
    )
    return [_downtown(), uptown]


def test_brand_summary_location_rows_follow_employee_filter():
    ctx = _context("brand_performance_summary", _two_locations(), employee_id="ann")
    brand = REPORT_BUILDERS["brand_performance_summary"].build(ctx)
    summary = _pairs(brand.sections[0])
    assert summary["Active Stylists"] == 1
    by_location = {row["name"]: row["revenue"] for row in brand.sections[1].rows}
    assert by_location["Downtown"] == summary["Total Revenue"]
    assert by_location["Uptown"] == Decimal("0.00")


def test_leaderboard_ranks_by_filtered_employee():
    ctx = _context("location_leaderboard", _two_locations(), employee_id="ann")
    board = REPORT_BUILDERS["location_leaderboard"].build(ctx)
    assert [(row["rank"], row["name"]) for row in board.sections[0].rows] == [(1, "Downtown"), (2, "Uptown")]


def test_tax_collected_follows_employee_filter():
    ctx = _context("tax_collected_summary", [_downtown()], employee_id="ben")
    result = REPORT_BUILDERS["tax_collected_summary"].build(ctx)
    row = result.sections[0].rows[0]
    assert row["tax_collected"] == Decimal("4.00")
    assert row["transactions"] == 2
    assert _pairs(result.sections[1])["Tax Collected"] == Decimal("4.00")


def test_location_360_follows_employee_filter():
    ctx = _context("location_360", [_downtown()], employee_id="ann")
    result = REPORT_BUILDERS["location_360"].build(ctx)
    assert _pairs(result.sections[1])["Transactions"] == 1
    assert _pairs(result.sections[2])["Total Booked"] == 2
    assert [row["name"] for row in result.sections[3].rows] == ["Ann"]


def test_context_views_are_computed_once():
    bundle = _downtown()
    ctx = _context("staff_performance", [bundle])
    assert ctx.employee_names is ctx.employee_names
    assert ctx.location_names is ctx.location_names
    assert ctx.transactions is ctx.transactions
    assert ctx.scoped_bundles[0] is bundle

    scoped = _context("staff_performance", [bundle], employee_id="ben")
    assert scoped.scoped_bundles is scoped.scoped_bundles
    assert {txn.employee_id for txn in scoped.transactions} == {"ben"}
    assert scoped.employee_names == {"ann": "Ann", "ben": "Ben"}

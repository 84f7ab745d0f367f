"""Report-specific body sections.

Each builder receives the fetched location bundles for one request and
returns the sections (and, for money reports, the reconciliation snapshot)
that the document assembler lays out. Builders never touch the data layer.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from functools import cached_property
from typing import Any, Callable, Iterable, Mapping, Sequence
from zoneinfo import ZoneInfo

from app.salon_reports.schemas.reports import DocumentSection, ReportRequest
from app.salon_reports.services.catalog import ReportDefinition
from app.salon_reports.services.documents import key_value_section, section
from app.salon_reports.services.fetch import LocationBundle
from app.salon_reports.services.metrics import (
    EntityMetric,
    location_performance,
    rate_pct,
    sort_by_revenue,
    stylist_performance,
    summarize,
)
from app.salon_reports.services.periods import ReportPeriod, ensure_utc, iter_dates, local_date
from app.salon_reports.services.reconciliation import (
    ZERO,
    ReconciliationSnapshot,
    money,
    reconcile_cash_drawer,
    reconcile_totals,
    summarize_transactions,
)
from app.salon_reports.services.records import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED_STATUSES,
    APPOINTMENT_NO_SHOW,
    PAYMENT_CASH,
    PAYMENT_GIFT_CARD,
    TRANSACTION_REFUNDED,
    TRANSACTION_SALE_STATUSES,
    TRANSACTION_VOIDED,
    AppointmentRecord,
    DrawerSessionRecord,
    EmployeeRecord,
    TransactionRecord,
)


@dataclass(frozen=True)
class BuildContext:
    """Inputs for one builder call.

    Derived views are computed once per context. ``scoped_bundles`` are the
    location bundles narrowed to ``employee_id`` (when set) so location-level
    figures agree with the stylist-level ones.
    """

    definition: ReportDefinition
    request: ReportRequest
    period: ReportPeriod
    tz: ZoneInfo
    bundles: Sequence[LocationBundle]
    capacity_minutes: int
    employee_id: str | None = None
    ledger_max_rows: int = 100
    top_items_limit: int = 10

    @cached_property
    def location_names(self) -> dict[str, str]:
        return {bundle.location.id: bundle.location.name for bundle in self.bundles}

    @cached_property
    def employees(self) -> list[EmployeeRecord]:
        return [emp for bundle in self.bundles for emp in bundle.employees]

    @cached_property
    def employee_names(self) -> dict[str, str]:
        return {emp.id: emp.name for emp in self.employees}

    @cached_property
    def scoped_bundles(self) -> list[LocationBundle]:
        if not self.employee_id:
            return list(self.bundles)
        employee_id = self.employee_id
        return [
            replace(
                bundle,
                employees=tuple(emp for emp in bundle.employees if emp.id == employee_id),
                appointments=tuple(appt for appt in bundle.appointments if appt.employee_id == employee_id),
                transactions=tuple(txn for txn in bundle.transactions if txn.employee_id == employee_id),
            )
            for bundle in self.bundles
        ]

    @cached_property
    def appointments(self) -> list[AppointmentRecord]:
        return [appt for bundle in self.scoped_bundles for appt in bundle.appointments]

    @cached_property
    def transactions(self) -> list[TransactionRecord]:
        return [txn for bundle in self.scoped_bundles for txn in bundle.transactions]

    @cached_property
    def drawer_sessions(self) -> list[DrawerSessionRecord]:
        return [session for bundle in self.bundles for session in bundle.drawer_sessions]


@dataclass(frozen=True)
class BuildResult:
    sections: list[DocumentSection]
    reconciliation: ReconciliationSnapshot | None = None


@dataclass(frozen=True)
class ReportBuilder:
    build: Callable[[BuildContext], BuildResult]
    employees: bool = True
    appointments: bool = True
    transactions: bool = True
    drawer_sessions: bool = False
    single_location: bool = False
    # false where figures always cover the whole location
    employee_filter: bool = True


@dataclass
class _Bucket:
    booked: int = 0
    completed: int = 0
    no_shows: int = 0
    cancelled: int = 0
    amounts: dict[str, Decimal] = field(default_factory=lambda: defaultdict(lambda: ZERO))
    count: int = 0


# --- shared row shapes ------------------------------------------------------

METRIC_COLUMNS = [
    "name",
    "location",
    "appointments_booked",
    "appointments_completed",
    "no_shows",
    "no_show_rate",
    "revenue",
    "unique_customers",
    "utilization_pct",
]


def _metric_row(metric: EntityMetric, location_names: Mapping[str, str]) -> dict[str, Any]:
    return {
        "entity_id": metric.entity_id,
        "name": metric.name,
        "location": location_names.get(metric.location_id or "", ""),
        "appointments_booked": metric.appointments_booked,
        "appointments_completed": metric.appointments_completed,
        "no_shows": metric.no_shows,
        "no_show_rate": metric.no_show_rate,
        "cancellations": metric.cancellations,
        "revenue": money(metric.revenue),
        "unique_customers": metric.unique_customers,
        "utilization_pct": metric.utilization_pct,
        "booked_minutes": metric.booked_minutes,
    }


def _summary_section(title: str, rows: Sequence[EntityMetric], entity_label: str) -> DocumentSection:
    summary = summarize(rows)
    return key_value_section(
        title,
        [
            (f"Total {entity_label}", summary.total_entities),
            ("Average Utilization %", summary.avg_utilization),
            ("Total Revenue", money(summary.total_revenue)),
            ("Total No-Shows", summary.total_no_shows),
        ],
    )


def _stylist_rows(ctx: BuildContext) -> list[EntityMetric]:
    return stylist_performance(
        ctx.employees,
        ctx.appointments,
        ctx.transactions,
        capacity_minutes=ctx.capacity_minutes,
        employee_id=ctx.employee_id,
    )


def _location_rows(ctx: BuildContext) -> list[EntityMetric]:
    rows = [
        location_performance(
            bundle.location.id,
            bundle.location.name,
            bundle.employees,
            bundle.appointments,
            bundle.transactions,
            capacity_minutes=ctx.capacity_minutes,
        )
        for bundle in ctx.scoped_bundles
    ]
    return sort_by_revenue(rows)


def _sale_transactions(transactions: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return [txn for txn in transactions if txn.status in TRANSACTION_SALE_STATUSES]


def _top_items(transactions: Iterable[TransactionRecord], limit: int | None = None) -> list[dict[str, Any]]:
    items: dict[str, dict[str, Any]] = {}
    for txn in _sale_transactions(transactions):
        for line in txn.line_items:
            name = line.description or "Unknown Item"
            entry = items.setdefault(name, {"name": name, "quantity": 0, "sales": ZERO})
            entry["quantity"] += line.quantity
            entry["sales"] += line.total
    ranked = sorted(items.values(), key=lambda item: item["sales"], reverse=True)
    return [{**item, "sales": money(item["sales"])} for item in ranked[:limit]]


def _sales_pairs(ctx: BuildContext) -> tuple[list[tuple[str, Any]], ReconciliationSnapshot]:
    totals = summarize_transactions(ctx.transactions)
    pairs = [
        ("Gross Sales", money(totals.gross_sales)),
        (f"Refunds ({totals.refund_count})", money(totals.refunds)),
        (f"Voids ({totals.void_count})", money(totals.voids)),
        ("Discounts", money(totals.discounts)),
        ("Net Sales", money(totals.net_sales)),
        ("Tax Collected", money(totals.tax)),
        ("Tips Collected", money(totals.tips)),
        ("Transactions", totals.sale_count),
        ("Average Ticket", totals.average_ticket),
    ]
    return pairs, reconcile_totals(totals)


def _appointment_row(appt: AppointmentRecord, ctx: BuildContext) -> dict[str, Any]:
    start_local = ensure_utc(appt.start_time).astimezone(ctx.tz)
    return {
        "date": start_local.date(),
        "time": start_local.strftime("%H:%M"),
        "stylist": ctx.employee_names.get(appt.employee_id or "", "Unassigned"),
        "location": ctx.location_names.get(appt.location_id, ""),
        "client_id": appt.client_id,
        "service": appt.service_name,
        "duration_minutes": appt.duration_minutes,
        "status": appt.status,
    }


def _sorted_appointments(appointments: Iterable[AppointmentRecord]) -> list[AppointmentRecord]:
    return sorted(appointments, key=lambda appt: ensure_utc(appt.start_time))


APPOINTMENT_COLUMNS = ["date", "time", "stylist", "location", "client_id", "service", "duration_minutes", "status"]


# --- staff ------------------------------------------------------------------


def build_staff_performance(ctx: BuildContext) -> BuildResult:
    rows = _stylist_rows(ctx)
    names = ctx.location_names
    return BuildResult(
        sections=[
            section("Staff Performance", METRIC_COLUMNS, (_metric_row(row, names) for row in rows)),
            _summary_section("Team Summary", rows, "Stylists"),
        ]
    )


def build_stylist_utilization(ctx: BuildContext) -> BuildResult:
    rows = _stylist_rows(ctx)
    names = ctx.location_names
    columns = ["name", "location", "appointments_completed", "booked_minutes", "utilization_pct", "revenue"]
    return BuildResult(
        sections=[
            section(
                "Stylist Utilization",
                columns,
                (_metric_row(row, names) for row in rows),
                note=f"Available minutes per stylist: {ctx.capacity_minutes}",
            ),
            _summary_section("Utilization Summary", rows, "Stylists"),
        ]
    )


def build_my_sales(ctx: BuildContext) -> BuildResult:
    rows = _stylist_rows(ctx)
    names = ctx.location_names
    return BuildResult(
        sections=[
            section("My Performance", METRIC_COLUMNS, (_metric_row(row, names) for row in rows)),
            section(
                "Services & Products Sold",
                ["name", "quantity", "sales"],
                _top_items(ctx.transactions),
            ),
        ]
    )


# --- HQ / locations -----------------------------------------------------------


def build_brand_performance_summary(ctx: BuildContext) -> BuildResult:
    location_rows = _location_rows(ctx)
    stylist_rows = _stylist_rows(ctx)
    totals = summarize_transactions(ctx.transactions)
    brand = summarize(stylist_rows)
    pairs = [
        ("Locations", len(location_rows)),
        ("Active Stylists", brand.total_entities),
        ("Average Utilization %", brand.avg_utilization),
        ("Total Revenue", money(brand.total_revenue)),
        ("Net Sales", money(totals.net_sales)),
        ("Total No-Shows", brand.total_no_shows),
        ("Average Ticket", totals.average_ticket),
    ]
    names = ctx.location_names
    return BuildResult(
        sections=[
            key_value_section("Brand Summary", pairs),
            section("Performance by Location", METRIC_COLUMNS, (_metric_row(row, names) for row in location_rows)),
        ]
    )


def build_location_leaderboard(ctx: BuildContext) -> BuildResult:
    rows = _location_rows(ctx)
    ranked = [
        {"rank": index, **_metric_row(row, ctx.location_names)}
        for index, row in enumerate(rows, start=1)
    ]
    return BuildResult(
        sections=[
            section(
                "Location Leaderboard",
                ["rank", "name", "revenue", "appointments_completed", "no_show_rate", "utilization_pct"],
                ranked,
            )
        ]
    )


def build_location_comparison(ctx: BuildContext) -> BuildResult:
    rows = _location_rows(ctx)
    return BuildResult(
        sections=[
            section("Location Comparison", METRIC_COLUMNS, (_metric_row(row, ctx.location_names) for row in rows)),
            _summary_section("Comparison Summary", rows, "Locations"),
        ]
    )


def build_location_360(ctx: BuildContext) -> BuildResult:
    bundle = ctx.scoped_bundles[0]
    sales = _sale_transactions(bundle.transactions)
    gross = sum((txn.total for txn in sales), ZERO)
    tips = sum((txn.tip for txn in sales), ZERO)
    tax = sum((txn.tax for txn in sales), ZERO)
    average = money(gross / Decimal(len(sales))) if sales else ZERO
    appointments = bundle.appointments
    booked = len(appointments)
    completed = sum(1 for appt in appointments if appt.status in APPOINTMENT_COMPLETED_STATUSES)
    no_shows = sum(1 for appt in appointments if appt.status == APPOINTMENT_NO_SHOW)
    stylists = stylist_performance(
        bundle.employees,
        bundle.appointments,
        bundle.transactions,
        capacity_minutes=ctx.capacity_minutes,
    )
    return BuildResult(
        sections=[
            key_value_section(
                f"Location: {bundle.location.name}",
                [("Franchise", bundle.location.franchise_id or "N/A")],
            ),
            key_value_section(
                "Sales Overview",
                [
                    ("Gross Sales", money(gross)),
                    ("Transactions", len(sales)),
                    ("Average Ticket", average),
                    ("Tips Collected", money(tips)),
                    ("Tax Collected", money(tax)),
                ],
            ),
            key_value_section(
                "Appointments",
                [
                    ("Total Booked", booked),
                    ("Completed", completed),
                    ("No-Shows", no_shows),
                    ("No-Show Rate %", rate_pct(no_shows, booked)),
                ],
            ),
            section(
                "Staff",
                ["name", "revenue", "appointments_completed", "utilization_pct"],
                (_metric_row(row, ctx.location_names) for row in stylists),
            ),
        ]
    )


# --- appointments -------------------------------------------------------------


def _appointment_totals(appointments: Sequence[AppointmentRecord]) -> list[tuple[str, Any]]:
    booked = len(appointments)
    no_shows = sum(1 for appt in appointments if appt.status == APPOINTMENT_NO_SHOW)
    return [
        ("Total Booked", booked),
        ("Completed", sum(1 for appt in appointments if appt.status in APPOINTMENT_COMPLETED_STATUSES)),
        ("No-Shows", no_shows),
        ("Cancellations", sum(1 for appt in appointments if appt.status == APPOINTMENT_CANCELLED)),
        ("No-Show Rate %", rate_pct(no_shows, booked)),
    ]


def _appointments_by_day(ctx: BuildContext) -> list[dict[str, Any]]:
    buckets: dict[date, _Bucket] = defaultdict(_Bucket)
    for appt in ctx.appointments:
        bucket = buckets[local_date(appt.start_time, ctx.tz)]
        bucket.booked += 1
        if appt.status in APPOINTMENT_COMPLETED_STATUSES:
            bucket.completed += 1
        elif appt.status == APPOINTMENT_NO_SHOW:
            bucket.no_shows += 1
        elif appt.status == APPOINTMENT_CANCELLED:
            bucket.cancelled += 1
    rows = []
    for day in iter_dates(ctx.period.date_from, ctx.period.date_to):
        bucket = buckets.get(day, _Bucket())
        rows.append(
            {
                "date": day,
                "booked": bucket.booked,
                "completed": bucket.completed,
                "no_shows": bucket.no_shows,
                "cancelled": bucket.cancelled,
            }
        )
    return rows


def build_appointments_summary(ctx: BuildContext) -> BuildResult:
    stylists = _stylist_rows(ctx)
    return BuildResult(
        sections=[
            key_value_section("Appointments Summary", _appointment_totals(ctx.appointments)),
            section("Appointments by Day", ["date", "booked", "completed", "no_shows", "cancelled"], _appointments_by_day(ctx)),
            section(
                "Appointments by Stylist",
                ["name", "appointments_booked", "appointments_completed", "no_shows", "no_show_rate", "cancellations"],
                (_metric_row(row, ctx.location_names) for row in stylists),
            ),
        ]
    )


def build_no_show_cancellation(ctx: BuildContext) -> BuildResult:
    missed = [
        appt
        for appt in _sorted_appointments(ctx.appointments)
        if appt.status in (APPOINTMENT_NO_SHOW, APPOINTMENT_CANCELLED)
    ]
    return BuildResult(
        sections=[
            key_value_section("No-Show & Cancellation Summary", _appointment_totals(ctx.appointments)),
            section("Missed Appointments", APPOINTMENT_COLUMNS, (_appointment_row(appt, ctx) for appt in missed)),
        ]
    )


def build_appointment_sheet(ctx: BuildContext) -> BuildResult:
    appointments = _sorted_appointments(ctx.appointments)
    return BuildResult(
        sections=[
            section("Appointments", APPOINTMENT_COLUMNS, (_appointment_row(appt, ctx) for appt in appointments)),
            key_value_section("Totals", _appointment_totals(appointments)),
        ]
    )


# --- sales & accounting -------------------------------------------------------


def build_sales_summary(ctx: BuildContext) -> BuildResult:
    pairs, snapshot = _sales_pairs(ctx)
    return BuildResult(sections=[key_value_section("Sales Summary", pairs)], reconciliation=snapshot)


def build_daily_sales_summary(ctx: BuildContext) -> BuildResult:
    pairs, snapshot = _sales_pairs(ctx)
    by_day: dict[date, list[TransactionRecord]] = defaultdict(list)
    for txn in ctx.transactions:
        by_day[local_date(txn.created_at, ctx.tz)].append(txn)
    day_rows = []
    for day in iter_dates(ctx.period.date_from, ctx.period.date_to):
        totals = summarize_transactions(by_day.get(day, []))
        day_rows.append(
            {
                "date": day,
                "gross_sales": money(totals.gross_sales),
                "refunds": money(totals.refunds),
                "net_sales": money(totals.net_sales),
                "tax": money(totals.tax),
                "tips": money(totals.tips),
                "transactions": totals.sale_count,
            }
        )
    return BuildResult(
        sections=[
            key_value_section("Sales Summary", pairs),
            section(
                "Sales by Day",
                ["date", "gross_sales", "refunds", "net_sales", "tax", "tips", "transactions"],
                day_rows,
            ),
        ],
        reconciliation=snapshot,
    )


def _ledger_row(txn: TransactionRecord, ctx: BuildContext) -> dict[str, Any]:
    return {
        "created_at": ensure_utc(txn.created_at).astimezone(ctx.tz).isoformat(timespec="seconds"),
        "transaction_id": txn.id,
        "location": ctx.location_names.get(txn.location_id, ""),
        "employee": ctx.employee_names.get(txn.employee_id or "", "-"),
        "payment_method": txn.payment_method,
        "status": txn.status,
        "subtotal": money(txn.subtotal),
        "discount": money(txn.discount),
        "tax": money(txn.tax),
        "tip": money(txn.tip),
        "total": money(txn.total),
    }


LEDGER_COLUMNS = [
    "created_at",
    "transaction_id",
    "location",
    "employee",
    "payment_method",
    "status",
    "subtotal",
    "discount",
    "tax",
    "tip",
    "total",
]


def build_transactions_ledger(ctx: BuildContext) -> BuildResult:
    pairs, snapshot = _sales_pairs(ctx)
    ordered = sorted(ctx.transactions, key=lambda txn: ensure_utc(txn.created_at), reverse=True)
    shown = ordered[: ctx.ledger_max_rows]
    note = None
    if len(ordered) > len(shown):
        note = f"Showing first {len(shown)} of {len(ordered)} transactions."
    return BuildResult(
        sections=[
            key_value_section("Sales Summary", pairs),
            section("Transaction Details", LEDGER_COLUMNS, (_ledger_row(txn, ctx) for txn in shown), note=note),
        ],
        reconciliation=snapshot,
    )


def build_tax_collected_summary(ctx: BuildContext) -> BuildResult:
    _, snapshot = _sales_pairs(ctx)
    rows = []
    for bundle in ctx.scoped_bundles:
        sales = _sale_transactions(bundle.transactions)
        subtotal = sum((txn.subtotal - txn.discount for txn in sales), ZERO)
        tax = sum((txn.tax for txn in sales), ZERO)
        rows.append(
            {
                "location": bundle.location.name,
                "taxable_sales": money(subtotal),
                "tax_collected": money(tax),
                "total_with_tax": money(subtotal + tax),
                "transactions": len(sales),
            }
        )
    return BuildResult(
        sections=[
            section(
                "Tax by Location",
                ["location", "taxable_sales", "tax_collected", "total_with_tax", "transactions"],
                rows,
            ),
            key_value_section("Tax Totals", [("Tax Collected", snapshot.tax)]),
        ],
        reconciliation=snapshot,
    )


def build_refund_void_audit(ctx: BuildContext) -> BuildResult:
    _, snapshot = _sales_pairs(ctx)
    flagged = [
        txn
        for txn in sorted(ctx.transactions, key=lambda txn: ensure_utc(txn.created_at))
        if txn.status in (TRANSACTION_REFUNDED, TRANSACTION_VOIDED) or txn.discount > 0
    ]
    refunds = [txn for txn in flagged if txn.status == TRANSACTION_REFUNDED]
    voids = [txn for txn in flagged if txn.status == TRANSACTION_VOIDED]
    discounted = [txn for txn in flagged if txn.status in TRANSACTION_SALE_STATUSES]
    return BuildResult(
        sections=[
            key_value_section(
                "Audit Summary",
                [
                    ("Refunds", len(refunds)),
                    ("Refund Amount", snapshot.refunds),
                    ("Voids", len(voids)),
                    ("Void Amount", snapshot.voids),
                    ("Discounted Sales", len(discounted)),
                    ("Discount Amount", snapshot.discounts),
                ],
            ),
            section("Flagged Transactions", LEDGER_COLUMNS, (_ledger_row(txn, ctx) for txn in flagged)),
        ],
        reconciliation=snapshot,
    )


def _tips_by_employee(ctx: BuildContext) -> tuple[list[dict[str, Any]], Decimal, Decimal]:
    cash_tips = card_tips = ZERO
    by_employee: dict[str, dict[str, Any]] = {}
    names = ctx.employee_names
    for txn in _sale_transactions(ctx.transactions):
        tip = txn.tip or ZERO
        key = txn.employee_id or "unknown"
        entry = by_employee.setdefault(
            key,
            {"name": names.get(key, "Unknown"), "cash_tips": ZERO, "card_tips": ZERO},
        )
        if txn.payment_method == PAYMENT_CASH:
            cash_tips += tip
            entry["cash_tips"] += tip
        else:
            card_tips += tip
            entry["card_tips"] += tip
    rows = [
        {
            "name": entry["name"],
            "cash_tips": money(entry["cash_tips"]),
            "card_tips": money(entry["card_tips"]),
            "total_tips": money(entry["cash_tips"] + entry["card_tips"]),
        }
        for entry in by_employee.values()
    ]
    rows.sort(key=lambda row: row["total_tips"], reverse=True)
    return rows, cash_tips, card_tips


def build_tips_summary(ctx: BuildContext) -> BuildResult:
    rows, cash_tips, card_tips = _tips_by_employee(ctx)
    _, snapshot = _sales_pairs(ctx)
    return BuildResult(
        sections=[
            key_value_section(
                "Tips Summary",
                [
                    ("Cash Tips", money(cash_tips)),
                    ("Card Tips", money(card_tips)),
                    ("Total Tips", money(cash_tips + card_tips)),
                ],
            ),
            section("Tips by Employee", ["name", "cash_tips", "card_tips", "total_tips"], rows),
        ],
        reconciliation=snapshot,
    )


def build_my_tips(ctx: BuildContext) -> BuildResult:
    by_day: dict[date, _Bucket] = defaultdict(_Bucket)
    for txn in _sale_transactions(ctx.transactions):
        bucket = by_day[local_date(txn.created_at, ctx.tz)]
        bucket.count += 1
        method = "cash" if txn.payment_method == PAYMENT_CASH else "card"
        bucket.amounts[method] += txn.tip or ZERO
    rows = []
    cash_total = card_total = ZERO
    for day in iter_dates(ctx.period.date_from, ctx.period.date_to):
        bucket = by_day.get(day, _Bucket())
        cash, card = bucket.amounts["cash"], bucket.amounts["card"]
        cash_total += cash
        card_total += card
        rows.append(
            {
                "date": day,
                "transactions": bucket.count,
                "cash_tips": money(cash),
                "card_tips": money(card),
                "total_tips": money(cash + card),
            }
        )
    return BuildResult(
        sections=[
            key_value_section(
                "My Tips",
                [
                    ("Cash Tips", money(cash_total)),
                    ("Card Tips", money(card_total)),
                    ("Total Tips", money(cash_total + card_total)),
                ],
            ),
            section("Tips by Day", ["date", "transactions", "cash_tips", "card_tips", "total_tips"], rows),
        ]
    )


# --- operations ---------------------------------------------------------------


def _latest_sessions(sessions: Iterable[DrawerSessionRecord]) -> list[DrawerSessionRecord]:
    latest: dict[str, DrawerSessionRecord] = {}
    for session in sessions:
        current = latest.get(session.location_id)
        if current is None or ensure_utc(session.opened_at) > ensure_utc(current.opened_at):
            latest[session.location_id] = session
    return list(latest.values())


def build_shift_close_z_report(ctx: BuildContext) -> BuildResult:
    transactions = ctx.transactions
    sales = _sale_transactions(transactions)
    returned = [txn for txn in transactions if txn.status in (TRANSACTION_REFUNDED, TRANSACTION_VOIDED)]
    total_sales = sum((txn.total for txn in sales), ZERO)
    cash_sales = sum((txn.total for txn in sales if txn.payment_method == PAYMENT_CASH), ZERO)
    gift_sales = sum((txn.total for txn in sales if txn.payment_method == PAYMENT_GIFT_CARD), ZERO)
    card_sales = total_sales - cash_sales - gift_sales
    refund_total = sum((abs(txn.total) for txn in returned), ZERO)
    cash_refunds = sum((abs(txn.total) for txn in returned if txn.payment_method == PAYMENT_CASH), ZERO)
    refund_tax = sum((abs(txn.tax) for txn in returned), ZERO)

    sessions = _latest_sessions(ctx.drawer_sessions)
    opening = sum((session.starting_cash for session in sessions), ZERO)
    counted = None
    if sessions and all(session.ending_cash is not None for session in sessions):
        counted = sum((session.ending_cash for session in sessions), ZERO)
    drawer = reconcile_cash_drawer(opening=opening, cash_sales=cash_sales, cash_refunds=cash_refunds, counted=counted)

    subtotal = sum((txn.subtotal for txn in sales), ZERO)
    tax = sum((txn.tax for txn in sales), ZERO)
    _, snapshot = _sales_pairs(ctx)
    return BuildResult(
        sections=[
            key_value_section(
                "Summary",
                [
                    ("Total Sales", money(total_sales)),
                    ("Cash Sales", money(cash_sales)),
                    ("Card Sales", money(card_sales)),
                    ("Gift Card Sales", money(gift_sales)),
                    ("Transactions", len(sales)),
                    ("Refunds", money(refund_total)),
                    ("Refund Count", len(returned)),
                    ("Refund Tax", money(refund_tax)),
                    ("Net Sales", money(total_sales - refund_total)),
                ],
            ),
            key_value_section(
                "Cash Reconciliation",
                [
                    ("Opening Cash", drawer.opening),
                    ("Cash Sales", drawer.cash_sales),
                    ("Cash Refunds", drawer.cash_refunds),
                    ("Expected Closing", drawer.expected),
                    ("Actual Closing", drawer.actual),
                    ("Variance", drawer.variance),
                ],
            ),
            key_value_section(
                "Tax Summary",
                [
                    ("Subtotal", money(subtotal)),
                    ("Tax Collected", money(tax)),
                    ("Total with Tax", money(subtotal + tax)),
                ],
            ),
            section("Top Selling Items", ["name", "quantity", "sales"], _top_items(sales, ctx.top_items_limit)),
        ],
        reconciliation=snapshot,
    )


def build_cash_drawer_variance(ctx: BuildContext) -> BuildResult:
    names = ctx.location_names
    by_location: dict[str, list[TransactionRecord]] = defaultdict(list)
    for txn in ctx.transactions:
        if txn.payment_method == PAYMENT_CASH:
            by_location[txn.location_id].append(txn)
    rows = []
    total_variance = ZERO
    flagged = 0
    for session in sorted(ctx.drawer_sessions, key=lambda item: ensure_utc(item.opened_at)):
        opened = ensure_utc(session.opened_at)
        closed = ensure_utc(session.closed_at) if session.closed_at else ctx.period.end_utc
        in_session = [
            txn for txn in by_location.get(session.location_id, []) if opened <= ensure_utc(txn.created_at) <= closed
        ]
        cash_sales = sum((txn.total for txn in in_session if txn.status in TRANSACTION_SALE_STATUSES), ZERO)
        cash_refunds = sum(
            (abs(txn.total) for txn in in_session if txn.status in (TRANSACTION_REFUNDED, TRANSACTION_VOIDED)),
            ZERO,
        )
        drawer = reconcile_cash_drawer(
            opening=session.starting_cash,
            cash_sales=cash_sales,
            cash_refunds=cash_refunds,
            counted=session.ending_cash,
        )
        total_variance += drawer.variance
        if drawer.status != "BALANCED":
            flagged += 1
        rows.append(
            {
                "location": names.get(session.location_id, ""),
                "opened_at": opened.astimezone(ctx.tz).isoformat(timespec="minutes"),
                "opening": drawer.opening,
                "cash_sales": drawer.cash_sales,
                "cash_refunds": drawer.cash_refunds,
                "expected": drawer.expected,
                "counted": drawer.actual,
                "variance": drawer.variance,
                "status": drawer.status,
            }
        )
    _, snapshot = _sales_pairs(ctx)
    return BuildResult(
        sections=[
            key_value_section(
                "Drawer Summary",
                [
                    ("Sessions", len(rows)),
                    ("Sessions with Variance", flagged),
                    ("Net Variance", money(total_variance)),
                ],
            ),
            section(
                "Drawer Sessions",
                ["location", "opened_at", "opening", "cash_sales", "cash_refunds", "expected", "counted", "variance", "status"],
                rows,
            ),
        ],
        reconciliation=snapshot,
    )


# --- services & customers ------------------------------------------------------


def build_top_services(ctx: BuildContext) -> BuildResult:
    return BuildResult(
        sections=[section("Top Services", ["name", "quantity", "sales"], _top_items(ctx.transactions, ctx.top_items_limit))]
    )


def build_vip_customers(ctx: BuildContext) -> BuildResult:
    customers: dict[str, dict[str, Any]] = {}
    for txn in _sale_transactions(ctx.transactions):
        if not txn.client_id:
            continue
        entry = customers.setdefault(txn.client_id, {"client_id": txn.client_id, "visits": 0, "spend": ZERO, "last_visit": None})
        entry["visits"] += 1
        entry["spend"] += txn.total
        visit = local_date(txn.created_at, ctx.tz)
        if entry["last_visit"] is None or visit > entry["last_visit"]:
            entry["last_visit"] = visit
    ranked = sorted(customers.values(), key=lambda entry: entry["spend"], reverse=True)[: ctx.top_items_limit]
    return BuildResult(
        sections=[
            section(
                "VIP Customers",
                ["client_id", "visits", "spend", "last_visit"],
                ({**entry, "spend": money(entry["spend"])} for entry in ranked),
            )
        ]
    )


REPORT_BUILDERS: Mapping[str, ReportBuilder] = {
    "staff_performance": ReportBuilder(build_staff_performance),
    "stylist_utilization": ReportBuilder(build_stylist_utilization),
    "my_sales": ReportBuilder(build_my_sales),
    "brand_performance_summary": ReportBuilder(build_brand_performance_summary),
    "location_leaderboard": ReportBuilder(build_location_leaderboard),
    "location_comparison": ReportBuilder(build_location_comparison),
    "location_360": ReportBuilder(build_location_360, single_location=True),
    "appointments_summary": ReportBuilder(build_appointments_summary),
    "no_show_cancellation": ReportBuilder(build_no_show_cancellation, transactions=False),
    "daily_appointments": ReportBuilder(build_appointment_sheet, transactions=False),
    "my_appointments": ReportBuilder(build_appointment_sheet, transactions=False),
    "sales_summary": ReportBuilder(build_sales_summary, appointments=False),
    "daily_sales_summary": ReportBuilder(build_daily_sales_summary, appointments=False),
    "transactions_ledger": ReportBuilder(build_transactions_ledger, appointments=False),
    "tax_collected_summary": ReportBuilder(build_tax_collected_summary, employees=False, appointments=False),
    "refund_void_audit": ReportBuilder(build_refund_void_audit, appointments=False),
    "tips_summary": ReportBuilder(build_tips_summary, appointments=False),
    "my_tips": ReportBuilder(build_my_tips, appointments=False),
    "shift_close_z_report": ReportBuilder(
        build_shift_close_z_report, appointments=False, drawer_sessions=True, employee_filter=False
    ),
    "cash_drawer_variance": ReportBuilder(
        build_cash_drawer_variance, employees=False, appointments=False, drawer_sessions=True, employee_filter=False
    ),
    "top_services": ReportBuilder(build_top_services, employees=False, appointments=False),
    "vip_customers": ReportBuilder(build_vip_customers, employees=False, appointments=False),
}

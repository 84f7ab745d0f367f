"""Per-entity performance figures derived from appointment and sales records.

Everything here is pure: the fetch stage hands over complete per-location
bundles and these functions only reduce them. Ratio metrics are guarded so an
empty period yields zeros instead of raising.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from app.salon_reports.services.periods import iter_dates
from app.salon_reports.services.records import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED_STATUSES,
    APPOINTMENT_NO_SHOW,
    DEFAULT_APPOINTMENT_MINUTES,
    STAFF_ROLES,
    TRANSACTION_SALE_STATUSES,
    AppointmentRecord,
    EmployeeRecord,
    TransactionRecord,
)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class EntityMetric:
    entity_id: str
    name: str
    location_id: str | None
    appointments_booked: int
    appointments_completed: int
    no_shows: int
    revenue: Decimal
    unique_customers: int
    utilization_pct: int
    cancellations: int = 0
    booked_minutes: int = 0

    @property
    def no_show_rate(self) -> int:
        return rate_pct(self.no_shows, self.appointments_booked)


@dataclass(frozen=True)
class BrandSummary:
    total_entities: int
    avg_utilization: int
    total_revenue: Decimal
    total_no_shows: int


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def rate_pct(numerator: int | Decimal, denominator: int | Decimal) -> int:
    if denominator <= 0:
        return 0
    return round_half_up(Decimal(numerator) * 100 / Decimal(denominator))


def clamp_pct(value: int) -> int:
    return max(0, min(100, value))


def utilization_pct(booked_minutes: int, available_minutes: int) -> int:
    return clamp_pct(rate_pct(booked_minutes, available_minutes))


def working_days(date_from: date, date_to: date, weekdays: Iterable[int]) -> int:
    allowed = frozenset(weekdays)
    return sum(1 for day in iter_dates(date_from, date_to) if day.weekday() in allowed)


def available_minutes(
    date_from: date,
    date_to: date,
    *,
    hours_per_day: int,
    minutes_per_hour: int,
    weekdays: Iterable[int],
) -> int:
    """Capacity estimate per entity; not derived from actual schedules."""
    return hours_per_day * minutes_per_hour * working_days(date_from, date_to, weekdays)


def appointment_minutes(appointment: AppointmentRecord) -> int:
    if appointment.duration_minutes is None:
        return DEFAULT_APPOINTMENT_MINUTES
    return max(0, appointment.duration_minutes)


def revenue_transactions(transactions: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return [txn for txn in transactions if txn.status in TRANSACTION_SALE_STATUSES]


def compute_entity_metric(
    *,
    entity_id: str,
    name: str,
    location_id: str | None,
    appointments: Sequence[AppointmentRecord],
    transactions: Sequence[TransactionRecord],
    capacity_minutes: int,
) -> EntityMetric:
    completed = [appt for appt in appointments if appt.status in APPOINTMENT_COMPLETED_STATUSES]
    no_shows = sum(1 for appt in appointments if appt.status == APPOINTMENT_NO_SHOW)
    cancellations = sum(1 for appt in appointments if appt.status == APPOINTMENT_CANCELLED)
    revenue = sum((txn.total for txn in transactions), ZERO)
    customers = {appt.client_id for appt in appointments if appt.client_id}
    customers.update(txn.client_id for txn in transactions if txn.client_id)
    booked_minutes = sum(appointment_minutes(appt) for appt in completed)
    return EntityMetric(
        entity_id=entity_id,
        name=name,
        location_id=location_id,
        appointments_booked=len(appointments),
        appointments_completed=len(completed),
        no_shows=no_shows,
        revenue=revenue,
        unique_customers=len(customers),
        utilization_pct=utilization_pct(booked_minutes, capacity_minutes),
        cancellations=cancellations,
        booked_minutes=booked_minutes,
    )


def sort_by_revenue(rows: Iterable[EntityMetric]) -> list[EntityMetric]:
    # sorted() is stable with reverse=True, so ties keep iteration order
    return sorted(rows, key=lambda row: row.revenue, reverse=True)


def staff_entities(employees: Iterable[EmployeeRecord], *, employee_id: str | None = None) -> list[EmployeeRecord]:
    entities = [emp for emp in employees if emp.is_active and emp.role.upper() in STAFF_ROLES]
    if employee_id:
        entities = [emp for emp in entities if emp.id == employee_id]
    return entities


def stylist_performance(
    employees: Sequence[EmployeeRecord],
    appointments: Sequence[AppointmentRecord],
    transactions: Sequence[TransactionRecord],
    *,
    capacity_minutes: int,
    employee_id: str | None = None,
) -> list[EntityMetric]:
    appointments_by_employee: dict[str, list[AppointmentRecord]] = defaultdict(list)
    for appt in appointments:
        if appt.employee_id:
            appointments_by_employee[appt.employee_id].append(appt)
    transactions_by_employee: dict[str, list[TransactionRecord]] = defaultdict(list)
    for txn in revenue_transactions(transactions):
        if txn.employee_id:
            transactions_by_employee[txn.employee_id].append(txn)

    rows = [
        compute_entity_metric(
            entity_id=emp.id,
            name=emp.name,
            location_id=emp.location_id,
            appointments=appointments_by_employee.get(emp.id, []),
            transactions=transactions_by_employee.get(emp.id, []),
            capacity_minutes=capacity_minutes,
        )
        for emp in staff_entities(employees, employee_id=employee_id)
    ]
    return sort_by_revenue(rows)


def location_performance(
    location_id: str,
    name: str,
    employees: Sequence[EmployeeRecord],
    appointments: Sequence[AppointmentRecord],
    transactions: Sequence[TransactionRecord],
    *,
    capacity_minutes: int,
) -> EntityMetric:
    """One row for a whole location; capacity scales with its active staff."""
    staff_count = len(staff_entities(employees))
    return compute_entity_metric(
        entity_id=location_id,
        name=name,
        location_id=location_id,
        appointments=appointments,
        transactions=revenue_transactions(transactions),
        capacity_minutes=capacity_minutes * staff_count,
    )


def summarize(rows: Sequence[EntityMetric]) -> BrandSummary:
    if not rows:
        return BrandSummary(total_entities=0, avg_utilization=0, total_revenue=ZERO, total_no_shows=0)
    utilization_total = sum(row.utilization_pct for row in rows)
    return BrandSummary(
        total_entities=len(rows),
        avg_utilization=round_half_up(Decimal(utilization_total) / Decimal(len(rows))),
        total_revenue=sum((row.revenue for row in rows), ZERO),
        total_no_shows=sum(row.no_shows for row in rows),
    )

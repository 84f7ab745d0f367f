"""Read-only record types handed over by the data layer, and its contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Protocol, Sequence

APPOINTMENT_COMPLETED_STATUSES = frozenset({"COMPLETED", "CHECKED_OUT"})
APPOINTMENT_NO_SHOW = "NO_SHOW"
APPOINTMENT_CANCELLED = "CANCELLED"

TRANSACTION_COMPLETED = "COMPLETED"
TRANSACTION_PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"
TRANSACTION_REFUNDED = "REFUNDED"
TRANSACTION_VOIDED = "VOIDED"
TRANSACTION_SALE_STATUSES = frozenset({TRANSACTION_COMPLETED, TRANSACTION_PARTIALLY_REFUNDED})

PAYMENT_CASH = "CASH"
PAYMENT_GIFT_CARD = "GIFT_CARD"
PAYMENT_CARD_METHODS = frozenset({"CARD", "CREDIT_CARD", "DEBIT_CARD"})

STAFF_ROLES = frozenset({"EMPLOYEE", "MANAGER"})
DEFAULT_APPOINTMENT_MINUTES = 60


@dataclass(frozen=True)
class LocationRecord:
    id: str
    tenant_id: str
    name: str
    franchise_id: str | None = None


@dataclass(frozen=True)
class EmployeeRecord:
    id: str
    name: str
    location_id: str
    role: str = "EMPLOYEE"
    is_active: bool = True


@dataclass(frozen=True)
class AppointmentRecord:
    id: str
    location_id: str
    employee_id: str | None
    client_id: str | None
    status: str
    start_time: datetime
    duration_minutes: int | None = None
    service_name: str | None = None


@dataclass(frozen=True)
class LineItemRecord:
    description: str
    quantity: int
    total: Decimal


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    location_id: str
    employee_id: str | None
    client_id: str | None
    status: str
    payment_method: str
    subtotal: Decimal
    tax: Decimal
    tip: Decimal
    discount: Decimal
    total: Decimal
    created_at: datetime
    line_items: tuple[LineItemRecord, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DrawerSessionRecord:
    id: str
    location_id: str
    opened_at: datetime
    starting_cash: Decimal
    ending_cash: Decimal | None = None
    closed_at: datetime | None = None


class ReportDataSource(Protocol):
    """Data accessor consumed by the aggregation pipeline.

    Every call is independent and may run on a worker thread concurrently
    with calls for other locations. Time bounds are UTC and inclusive.
    """

    def get_locations(self, location_ids: Sequence[str]) -> list[LocationRecord]: ...

    def list_employees(self, location_id: str) -> list[EmployeeRecord]: ...

    def list_appointments(self, location_id: str, start_utc: datetime, end_utc: datetime) -> list[AppointmentRecord]: ...

    def list_transactions(self, location_id: str, start_utc: datetime, end_utc: datetime) -> list[TransactionRecord]: ...

    def list_drawer_sessions(self, location_id: str, start_utc: datetime, end_utc: datetime) -> list[DrawerSessionRecord]: ...

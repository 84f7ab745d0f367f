from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.salon_reports.core.data_timing import timed_data_access
from app.salon_reports.core.error_catalog import AppError, ErrorCatalog
from app.salon_reports.db.models import Appointment, CashDrawerSession, Employee, Location, Transaction
from app.salon_reports.services.records import (
    AppointmentRecord,
    DrawerSessionRecord,
    EmployeeRecord,
    LineItemRecord,
    LocationRecord,
    TransactionRecord,
)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _id(value) -> str | None:
    return str(value) if value is not None else None


def _amount(value) -> Decimal:
    return value if value is not None else Decimal("0.00")


def _valid_ids(values: Sequence[str]) -> list[str]:
    valid = []
    for value in values:
        try:
            valid.append(str(uuid.UUID(str(value))))
        except ValueError:
            continue
    return valid


class SqlReportDataSource:
    """Read-only report data backed by the relational store.

    Every call opens and closes its own session, so one instance can serve
    concurrent fetch branches running on separate threads.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _query(self, stmt):
        try:
            with timed_data_access(), self.session_factory() as db:
                return list(db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise AppError(
                ErrorCatalog.DATA_UNAVAILABLE,
                details={"message": "report data query failed", "error": exc.__class__.__name__},
            ) from exc

    def get_locations(self, location_ids: Sequence[str]) -> list[LocationRecord]:
        ids = _valid_ids(location_ids)
        if not ids:
            return []
        rows = self._query(select(Location).where(Location.id.in_(ids)))
        return [
            LocationRecord(
                id=str(row.id),
                tenant_id=str(row.tenant_id),
                name=row.name,
                franchise_id=row.franchise_id,
            )
            for row in rows
        ]

    def list_employees(self, location_id: str) -> list[EmployeeRecord]:
        stmt = select(Employee).where(Employee.location_id == location_id).order_by(Employee.name.asc())
        return [
            EmployeeRecord(
                id=str(row.id),
                name=row.name,
                location_id=str(row.location_id),
                role=row.role,
                is_active=row.is_active,
            )
            for row in self._query(stmt)
        ]

    def list_appointments(self, location_id: str, start_utc: datetime, end_utc: datetime) -> list[AppointmentRecord]:
        stmt = (
            select(Appointment)
            .where(
                Appointment.location_id == location_id,
                Appointment.start_time >= _naive_utc(start_utc),
                Appointment.start_time <= _naive_utc(end_utc),
            )
            .order_by(Appointment.start_time.asc())
        )
        return [
            AppointmentRecord(
                id=str(row.id),
                location_id=str(row.location_id),
                employee_id=_id(row.employee_id),
                client_id=row.client_id,
                status=row.status,
                start_time=_aware(row.start_time),
                duration_minutes=row.duration_minutes,
                service_name=row.service_name,
            )
            for row in self._query(stmt)
        ]

    def list_transactions(self, location_id: str, start_utc: datetime, end_utc: datetime) -> list[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(
                Transaction.location_id == location_id,
                Transaction.created_at >= _naive_utc(start_utc),
                Transaction.created_at <= _naive_utc(end_utc),
            )
            .order_by(Transaction.created_at.asc())
        )
        return [
            TransactionRecord(
                id=str(row.id),
                location_id=str(row.location_id),
                employee_id=_id(row.employee_id),
                client_id=row.client_id,
                status=row.status,
                payment_method=row.payment_method,
                subtotal=_amount(row.subtotal),
                tax=_amount(row.tax),
                tip=_amount(row.tip),
                discount=_amount(row.discount),
                total=_amount(row.total),
                created_at=_aware(row.created_at),
                line_items=tuple(
                    LineItemRecord(description=item.description, quantity=item.quantity, total=_amount(item.total))
                    for item in row.line_items
                ),
            )
            for row in self._query(stmt)
        ]

    def list_drawer_sessions(
        self, location_id: str, start_utc: datetime, end_utc: datetime
    ) -> list[DrawerSessionRecord]:
        stmt = (
            select(CashDrawerSession)
            .where(
                CashDrawerSession.location_id == location_id,
                CashDrawerSession.opened_at >= _naive_utc(start_utc),
                CashDrawerSession.opened_at <= _naive_utc(end_utc),
            )
            .order_by(CashDrawerSession.opened_at.asc())
        )
        return [
            DrawerSessionRecord(
                id=str(row.id),
                location_id=str(row.location_id),
                opened_at=_aware(row.opened_at),
                starting_cash=_amount(row.starting_cash),
                ending_cash=row.ending_cash,
                closed_at=_aware(row.closed_at),
            )
            for row in self._query(stmt)
        ]

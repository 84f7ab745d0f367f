from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

import anyio
import anyio.to_thread

from app.salon_reports.core.config import settings
from app.salon_reports.core.error_catalog import AppError, ErrorCatalog
from app.salon_reports.core.logging import log_json
from app.salon_reports.core.metrics import metrics
from app.salon_reports.services.records import (
    AppointmentRecord,
    DrawerSessionRecord,
    EmployeeRecord,
    LocationRecord,
    ReportDataSource,
    TransactionRecord,
)

logger = logging.getLogger("salon_reports.fetch")


@dataclass(frozen=True)
class FetchPlan:
    start_utc: datetime
    end_utc: datetime
    employees: bool = True
    appointments: bool = True
    transactions: bool = True
    drawer_sessions: bool = False


@dataclass(frozen=True)
class LocationBundle:
    location: LocationRecord
    employees: tuple[EmployeeRecord, ...] = field(default_factory=tuple)
    appointments: tuple[AppointmentRecord, ...] = field(default_factory=tuple)
    transactions: tuple[TransactionRecord, ...] = field(default_factory=tuple)
    drawer_sessions: tuple[DrawerSessionRecord, ...] = field(default_factory=tuple)


def _data_unavailable(details: dict) -> AppError:
    metrics.increment_data_unavailable()
    log_json(logger, {"event": "data_unavailable", **details}, level=logging.ERROR)
    return AppError(ErrorCatalog.DATA_UNAVAILABLE, details=details)


def _fetch_bundle(source: ReportDataSource, location: LocationRecord, plan: FetchPlan) -> LocationBundle:
    employees = source.list_employees(location.id) if plan.employees else []
    appointments = (
        source.list_appointments(location.id, plan.start_utc, plan.end_utc) if plan.appointments else []
    )
    transactions = (
        source.list_transactions(location.id, plan.start_utc, plan.end_utc) if plan.transactions else []
    )
    drawer_sessions = (
        source.list_drawer_sessions(location.id, plan.start_utc, plan.end_utc) if plan.drawer_sessions else []
    )
    return LocationBundle(
        location=location,
        employees=tuple(employees),
        appointments=tuple(appointments),
        transactions=tuple(transactions),
        drawer_sessions=tuple(drawer_sessions),
    )


async def load_locations(source: ReportDataSource, location_ids: Sequence[str]) -> list[LocationRecord]:
    try:
        found = await anyio.to_thread.run_sync(source.get_locations, list(location_ids), abandon_on_cancel=True)
    except Exception as exc:
        raise _data_unavailable(
            {"stage": "locations", "location_ids": list(location_ids), "error": exc.__class__.__name__}
        ) from exc
    by_id = {location.id: location for location in found}
    return [by_id[location_id] for location_id in location_ids if location_id in by_id]


async def fetch_location_bundles(
    source: ReportDataSource,
    locations: Sequence[LocationRecord],
    plan: FetchPlan,
    *,
    timeout: float | None = None,
    max_concurrency: int | None = None,
) -> list[LocationBundle]:
    """Fetch every location in parallel; all-or-nothing.

    Branches run on worker threads behind a capacity limiter. The first
    failing branch cancels its siblings and the whole call raises
    DATA_UNAVAILABLE naming that location. Results keep ``locations`` order.
    """
    limit = max_concurrency or settings.AGGREGATION_MAX_CONCURRENCY
    deadline = timeout if timeout is not None else settings.AGGREGATION_TIMEOUT_SEC
    limiter = anyio.CapacityLimiter(max(1, limit))
    results: list[LocationBundle | None] = [None] * len(locations)
    failures: list[AppError] = []

    async def _branch(index: int, location: LocationRecord, cancel_scope: anyio.CancelScope) -> None:
        try:
            results[index] = await anyio.to_thread.run_sync(
                _fetch_bundle,
                source,
                location,
                plan,
                limiter=limiter,
                abandon_on_cancel=True,
            )
        except Exception as exc:
            if not failures:
                failures.append(
                    _data_unavailable(
                        {
                            "stage": "location",
                            "location_id": location.id,
                            "error": exc.__class__.__name__,
                        }
                    )
                )
                failures[0].__cause__ = exc
            cancel_scope.cancel()

    try:
        with anyio.fail_after(deadline):
            async with anyio.create_task_group() as tg:
                for index, location in enumerate(locations):
                    tg.start_soon(_branch, index, location, tg.cancel_scope)
    except TimeoutError as exc:
        raise _data_unavailable(
            {
                "stage": "location",
                "reason_code": "TIMEOUT",
                "timeout_sec": deadline,
                "pending_location_ids": [
                    location.id for location, bundle in zip(locations, results) if bundle is None
                ],
            }
        ) from exc

    if failures:
        raise failures[0]
    return [bundle for bundle in results if bundle is not None]

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.salon_reports.core.error_catalog import AppError, ErrorCatalog

_UTC_ALIASES = ("UTC", "Z", "Etc/UTC")


@dataclass(frozen=True)
class ReportPeriod:
    """Inclusive local date range plus its UTC instants."""

    date_from: date
    date_to: date
    start_local: datetime
    end_local: datetime
    start_utc: datetime
    end_utc: datetime
    timezone_name: str

    @property
    def days(self) -> int:
        return (self.date_to - self.date_from).days + 1


def resolve_timezone(timezone_name: str | None) -> ZoneInfo:
    tz_name = timezone_name or "UTC"
    if tz_name in _UTC_ALIASES:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise AppError(
            ErrorCatalog.INVALID_REQUEST,
            details={"message": "invalid timezone", "timezone": timezone_name},
        ) from exc


def resolve_period(date_from: date, date_to: date, tz: ZoneInfo) -> ReportPeriod:
    if date_to < date_from:
        raise AppError(
            ErrorCatalog.INVALID_REQUEST,
            details={"message": "date_to must not be before date_from", "reason_code": "DATE_RANGE_INVERTED"},
        )
    start_local = datetime.combine(date_from, time.min, tzinfo=tz)
    end_local = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=tz) - timedelta(microseconds=1)
    return ReportPeriod(
        date_from=date_from,
        date_to=date_to,
        start_local=start_local,
        end_local=end_local,
        start_utc=start_local.astimezone(timezone.utc),
        end_utc=end_local.astimezone(timezone.utc),
        timezone_name=str(tz),
    )


def validate_period(period: ReportPeriod, *, max_days: int) -> None:
    if max_days <= 0:
        return
    if period.days > max_days:
        raise AppError(
            ErrorCatalog.INVALID_REQUEST,
            details={
                "message": "date range exceeds limit",
                "reason_code": "REPORT_DATE_RANGE_LIMIT_EXCEEDED",
                "max_days": max_days,
            },
        )


def iter_dates(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def local_date(dt: datetime, tz: ZoneInfo) -> date:
    return ensure_utc(dt).astimezone(tz).date()


def timezone_label(timezone_name: str) -> str:
    return timezone_name.replace("America/", "").replace("_", " ")

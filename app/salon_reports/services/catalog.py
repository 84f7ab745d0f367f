"""Static registry of every report the platform can produce.

The registry is built once at import time and exposed through a read-only
mapping, so concurrent requests can share it without synchronization.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from app.salon_reports.core.error_catalog import AppError, ErrorCatalog


class Role(str, Enum):
    FRANCHISOR = "FRANCHISOR"
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"
    PROVIDER = "PROVIDER"


class Priority(str, Enum):
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


FINANCIAL_CATEGORIES = frozenset({"Accounting", "Compliance", "Operations", "Payroll", "Sales"})

REPORT_DEFINITIONS: Mapping[str, str] = MappingProxyType(
    {
        "Gross Sales": "Total sales before refunds, voids, and discounts",
        "Net Sales": "Gross Sales - Refunds - Voids - Discounts",
        "No-Show Rate": "No-Shows / Total Booked (excludes cancellations)",
        "Utilization": "Booked Minutes Completed / Available Minutes",
        "Tips": "Gratuities collected (Cash + Card tips)",
        "Refund": "Separate transaction linked to original sale",
        "Void": "Cancelled transaction before settlement, linked to original",
    }
)


@dataclass(frozen=True)
class ReportDefinition:
    report_id: str
    display_name: str
    priority: Priority
    allowed_roles: frozenset[Role]
    category: str
    requires_payroll_permission: bool = False
    orientation: Orientation = Orientation.PORTRAIT

    @property
    def is_financial(self) -> bool:
        return self.category in FINANCIAL_CATEGORIES

    @property
    def is_self_service(self) -> bool:
        return self.category == "Self"


_HQ = frozenset({Role.FRANCHISOR, Role.PROVIDER})
_HQ_AND_OWNER = frozenset({Role.FRANCHISOR, Role.OWNER, Role.PROVIDER})
_FRANCHISE = frozenset({Role.FRANCHISOR, Role.OWNER, Role.MANAGER})
_OWNERS = frozenset({Role.FRANCHISOR, Role.OWNER})
_MANAGER = frozenset({Role.MANAGER})
_EMPLOYEE = frozenset({Role.EMPLOYEE})


def _define(
    report_id: str,
    display_name: str,
    priority: Priority,
    roles: frozenset[Role],
    category: str,
    *,
    payroll: bool = False,
    landscape: bool = False,
) -> ReportDefinition:
    return ReportDefinition(
        report_id=report_id,
        display_name=display_name,
        priority=priority,
        allowed_roles=roles,
        category=category,
        requires_payroll_permission=payroll,
        orientation=Orientation.LANDSCAPE if landscape else Orientation.PORTRAIT,
    )


_DEFINITIONS = (
    # Franchisor HQ
    _define("brand_performance_summary", "Brand Performance Summary", Priority.P0, _HQ, "HQ"),
    _define("location_leaderboard", "Location Leaderboard", Priority.P0, _HQ, "HQ"),
    _define("location_360", "Location 360 Report", Priority.P0, _HQ_AND_OWNER, "HQ"),
    _define("exceptions_alerts", "Exceptions & Alerts Report", Priority.P0, _HQ, "HQ"),
    _define("tax_collected_summary", "Tax Collected Summary", Priority.P0, _FRANCHISE, "Accounting"),
    _define(
        "refund_void_audit",
        "Refund / Void / Discount Audit",
        Priority.P0,
        _FRANCHISE,
        "Compliance",
        landscape=True,
    ),
    _define("go_live_status", "Go-Live / Provisioning Status", Priority.P1, _HQ, "HQ"),
    _define("location_comparison", "Location Comparison Report", Priority.P1, _HQ, "HQ"),
    # Franchisee owner
    _define("sales_summary", "Sales Summary", Priority.P0, _FRANCHISE, "Sales"),
    _define("appointments_summary", "Appointments Summary", Priority.P0, _FRANCHISE, "Appointments"),
    _define("no_show_cancellation", "No-Show & Cancellation Report", Priority.P1, _FRANCHISE, "Appointments"),
    _define("customer_growth", "Customer Growth Report", Priority.P1, _OWNERS, "Customers"),
    _define("vip_customers", "VIP Customers Report", Priority.P1, _FRANCHISE, "Customers"),
    _define("service_category_performance", "Service Category Performance", Priority.P1, _FRANCHISE, "Services"),
    _define("top_services", "Top Services Report", Priority.P1, _FRANCHISE, "Services"),
    _define("tips_summary", "Tips Summary", Priority.P0, _FRANCHISE, "Payroll", payroll=True),
    _define("staff_performance", "Staff Performance Summary", Priority.P0, _FRANCHISE, "Staff"),
    _define("stylist_utilization", "Stylist Utilization Report", Priority.P1, _FRANCHISE, "Staff"),
    _define("timeclock_attendance", "Time Clock & Attendance", Priority.P1, _FRANCHISE, "Payroll", payroll=True),
    _define("shift_close_z_report", "Shift Close / Z Report", Priority.P0, _FRANCHISE, "Operations"),
    _define(
        "cash_drawer_variance",
        "Cash Drawer Variance Report",
        Priority.P0,
        _FRANCHISE,
        "Operations",
        payroll=True,
    ),
    _define("transactions_ledger", "Transactions Ledger", Priority.P0, _FRANCHISE, "Compliance", landscape=True),
    # Manager
    _define("daily_sales_summary", "Daily Sales Summary", Priority.P0, _MANAGER, "Sales"),
    _define("daily_appointments", "Daily Appointments Sheet", Priority.P0, _MANAGER, "Appointments"),
    # Employee
    _define("my_appointments", "My Appointments Report", Priority.P0, _EMPLOYEE, "Self"),
    _define("my_sales", "My Sales & Services Report", Priority.P0, _EMPLOYEE, "Self"),
    _define("my_tips", "My Tips Report", Priority.P0, _EMPLOYEE, "Self"),
)

REPORT_CATALOG: Mapping[str, ReportDefinition] = MappingProxyType(
    {definition.report_id: definition for definition in _DEFINITIONS}
)


def lookup(report_id: str) -> ReportDefinition:
    definition = REPORT_CATALOG.get(report_id)
    if definition is None:
        raise AppError(ErrorCatalog.REPORT_NOT_FOUND, details={"report_id": report_id})
    return definition


def all_reports() -> list[ReportDefinition]:
    return list(REPORT_CATALOG.values())

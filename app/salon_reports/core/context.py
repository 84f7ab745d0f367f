from __future__ import annotations

from dataclasses import dataclass

from app.salon_reports.core.error_catalog import AppError, ErrorCatalog
from app.salon_reports.core.security import TokenData
from app.salon_reports.services.catalog import Role


@dataclass(frozen=True)
class CallerScope:
    user_id: str
    tenant_id: str
    role: Role
    location_ids: tuple[str, ...] = ()
    employee_id: str | None = None
    payroll_permission: bool = False
    trace_id: str = ""


def build_caller_scope(token_data: TokenData, *, trace_id: str = "") -> CallerScope:
    try:
        role = Role(token_data.role.upper())
    except ValueError as exc:
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "unknown role", "role": token_data.role}) from exc
    return CallerScope(
        user_id=token_data.sub,
        tenant_id=token_data.tenant_id,
        role=role,
        location_ids=tuple(dict.fromkeys(token_data.location_ids)),
        employee_id=token_data.employee_id,
        payroll_permission=token_data.can_view_payroll,
        trace_id=trace_id,
    )

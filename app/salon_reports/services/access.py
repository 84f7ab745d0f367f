from __future__ import annotations

import logging

from app.salon_reports.core.error_catalog import AppError, ErrorCatalog
from app.salon_reports.core.logging import log_json
from app.salon_reports.core.metrics import metrics
from app.salon_reports.services.catalog import REPORT_CATALOG, ReportDefinition, Role, lookup

logger = logging.getLogger("salon_reports.access")

# Roles whose view of payroll-restricted reports also needs the explicit
# payroll-view permission. Other roles rely on allowed_roles alone.
PAYROLL_GATED_ROLES = frozenset({Role.FRANCHISOR})


def payroll_gate_applies(role: Role) -> bool:
    return role in PAYROLL_GATED_ROLES


def is_visible(definition: ReportDefinition, role: Role, payroll_permission: bool) -> bool:
    if role not in definition.allowed_roles:
        return False
    if definition.requires_payroll_permission and payroll_gate_applies(role) and not payroll_permission:
        return False
    return True


def available_reports(role: Role, payroll_permission: bool = False) -> list[ReportDefinition]:
    return [
        definition
        for definition in REPORT_CATALOG.values()
        if is_visible(definition, role, payroll_permission)
    ]


def authorize(report_id: str, role: Role, payroll_permission: bool = False) -> ReportDefinition:
    definition = lookup(report_id)
    if not is_visible(definition, role, payroll_permission):
        metrics.increment_access_denied()
        reason = "role_not_allowed"
        if role in definition.allowed_roles:
            reason = "payroll_permission_required"
        log_json(
            logger,
            {
                "event": "report_denied",
                "report_id": report_id,
                "role": role.value,
                "reason": reason,
            },
            level=logging.WARNING,
        )
        raise AppError(
            ErrorCatalog.ACCESS_DENIED,
            details={"report_id": report_id, "role": role.value, "reason": reason},
        )
    return definition

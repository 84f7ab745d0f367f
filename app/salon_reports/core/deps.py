from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.salon_reports.core.context import CallerScope, build_caller_scope
from app.salon_reports.core.error_catalog import AppError, ErrorCatalog
from app.salon_reports.core.security import TokenData, decode_token, oauth2_scheme
from app.salon_reports.db import session as db_session
from app.salon_reports.repos.report_data import SqlReportDataSource


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def require_caller_scope(
    request: Request,
    token_data: TokenData = Depends(get_current_token_data),
) -> CallerScope:
    trace_id = getattr(request.state, "trace_id", "")
    caller = build_caller_scope(token_data, trace_id=trace_id)
    request.state.tenant_id = caller.tenant_id
    request.state.user_id = caller.user_id
    request.state.role = caller.role.value
    return caller


def get_report_data_source() -> SqlReportDataSource:
    return SqlReportDataSource(db_session.SessionLocal)


__all__ = [
    "get_current_token_data",
    "require_caller_scope",
    "get_report_data_source",
]

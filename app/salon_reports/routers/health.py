from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.salon_reports.core.error_catalog import AppError, ErrorCatalog
from app.salon_reports.db.session import get_db

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    trace_id = getattr(request.state, "trace_id", "")
    return {"status": "ok", "trace_id": trace_id}


@router.get("/ready")
def ready(request: Request, db=Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise AppError(ErrorCatalog.DATA_UNAVAILABLE, details={"message": "database unreachable"}) from exc
    trace_id = getattr(request.state, "trace_id", "")
    return {"status": "ready", "trace_id": trace_id}

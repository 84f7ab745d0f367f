from fastapi import FastAPI

from app.salon_reports.api import api_router
from app.salon_reports.core.config import settings
from app.salon_reports.core.errors import setup_exception_handlers
from app.salon_reports.core.logging import configure_logging
from app.salon_reports.middleware.observability import ObservabilityMiddleware
from app.salon_reports.middleware.trace import TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()

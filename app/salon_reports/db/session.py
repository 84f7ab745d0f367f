from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.salon_reports.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # fetch branches open sessions from worker threads
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, echo=False, future=True, connect_args=connect_args)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

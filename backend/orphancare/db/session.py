"""Database session management"""
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from orphancare.models.base import Base
from orphancare.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """create_engine kwargs for the configured backend.

    SQLite (local development) is shared across FastAPI's worker threads and the
    scheduler's to_thread jobs, so the same-thread check is turned off.
    """
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 3600}


engine = create_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Request-scoped session dependency"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the users, beneficiaries, donations and stripe_events tables"""
    # Register every model on Base.metadata before create_all
    import orphancare.models  # noqa: F401
    Base.metadata.create_all(bind=engine)

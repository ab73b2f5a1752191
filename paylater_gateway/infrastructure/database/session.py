"""Engine and session factory for the transaction and early payment store"""

from typing import Any, Dict, Generator
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from paylater_gateway.config import Settings, settings


def engine_options(config: Settings) -> Dict[str, Any]:
    """Pool sizing from settings; SQLite (local runs) gets a thread-shareable connection instead"""
    if make_url(config.database_url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}

    # Processor calls keep a session checked out across a network round trip
    return {
        "pool_pre_ping": True,
        "pool_size": config.db_pool_size,
        "max_overflow": config.db_max_overflow,
        "pool_recycle": config.db_pool_recycle_seconds,
    }


engine = create_engine(settings.database_url, **engine_options(settings))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; callers commit, anything uncommitted is discarded on close"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

"""Database engine and session factory"""

from typing import Any, Dict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session
from jewelry_ledger.config import settings

# Seconds a SQLite writer waits on a locked database before OperationalError
SQLITE_BUSY_TIMEOUT = 30


def build_engine(database_url: str, **overrides: Any) -> Engine:
    """
    Create the ledger engine.

    PostgreSQL gets a bounded connection pool (max 20, recycled hourly).
    SQLite connections may be shared across worker threads and wait for
    the write lock instead of failing at once; a lock that outlasts the
    wait surfaces as OperationalError and is retried like a conflict.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        options: Dict[str, Any] = {
            "connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        }
    else:
        options = {
            "pool_pre_ping": True,  # Verify connections before using
            "pool_size": 10,
            "max_overflow": 10,
            "pool_recycle": 3600,
        }
    options.update(overrides)
    return create_engine(database_url, **options)


def build_session_factory(bind: Engine) -> sessionmaker:
    """Sessions never autoflush: a transaction's writes all reach the database in the commit flush"""
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)


def get_db() -> Session:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

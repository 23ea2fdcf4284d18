"""SQLAlchemy engine, session factory and the declarative base."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ..core.config import settings

DB_URL = settings.database_url

# SQLite connections are shared by FastAPI's worker threads; ``timeout`` is how
# long a writer waits on the database lock held by a concurrent checkout.
CONNECT_ARGS = {"check_same_thread": False, "timeout": 15} if DB_URL.startswith("sqlite") else {}

engine = create_engine(DB_URL, connect_args=CONNECT_ARGS, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

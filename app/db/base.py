"""
Engine, session factory and declarative base.

`SessionLocal` is the connection provider handed to the ingestion pipeline;
request handlers get a per-request session through `get_db`.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.core.config import settings


class Base(DeclarativeBase):
    pass


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {"connect_timeout": 10}


def build_engine(url: str):
    engine = create_engine(
        url,
        connect_args=_connect_args(url),
        pool_pre_ping=True,
    )
    if url.startswith("sqlite"):
        # SQLite ships with FK enforcement off; cascades rely on it.
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """FastAPI dependency for code that manages its own transactions."""
    return SessionLocal

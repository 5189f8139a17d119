"""Database engine, session factory and declarative base (SQLAlchemy 2.0)."""

from typing import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings
from app.logging_config import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def _build_engine(database_url: str) -> Engine:
    """Create the engine, applying pool settings only where the driver supports them."""
    settings = get_settings()
    engine_kwargs = {"pool_pre_ping": True}

    if database_url.startswith("sqlite"):
        # Route handlers run in a threadpool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_size"] = settings.database_pool_size
        engine_kwargs["max_overflow"] = settings.database_max_overflow

    built = create_engine(database_url, **engine_kwargs)

    if database_url.startswith("sqlite"):
        @event.listens_for(built, "connect")
        def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return built


engine = _build_engine(get_settings().database_url)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def init_db() -> None:
    """Create any missing tables.

    Imports the model modules so every table is registered on ``Base.metadata``.
    """
    from app.models import survey, response  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")


def get_db() -> Generator[Session, None, None]:
    """Dependency function for FastAPI to provide database sessions.

    Yields:
        Session: SQLAlchemy database session

    Note:
        The session is closed after the request completes, even if an
        exception occurs.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

"""
Database connection and session management
Using SQLAlchemy (PostgreSQL in production, SQLite locally and in tests)
"""

from functools import lru_cache
from typing import Optional
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from claimflow.core.config import settings

logger = logging.getLogger(__name__)

# Base class for ORM models
Base = declarative_base()


def build_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create an engine for the given URL.
    SQLite does not accept pool sizing; in-memory SQLite needs a single
    shared connection or every session would see an empty database.
    """
    url = database_url or settings.DATABASE_URL
    echo = settings.DEBUG if echo is None else echo

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
    else:
        engine = create_engine(
            url,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_pre_ping=True,  # Verify connections before using
            echo=echo,
        )

    # Event listeners for monitoring
    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        """Log database connections"""
        logger.debug("Database connection established")

    @event.listens_for(engine, "close")
    def receive_close(dbapi_conn, connection_record):
        """Log database disconnections"""
        logger.debug("Database connection closed")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine"""
    return sessionmaker(
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Process-wide engine for the configured DATABASE_URL"""
    return build_engine()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Initialize database tables
    Called during application startup
    """
    # Import models so their tables register on Base.metadata
    import claimflow.models  # noqa: F401

    engine = engine or get_engine()
    logger.info("Initializing database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def check_db_connection(engine: Optional[Engine] = None) -> bool:
    """
    Check if database connection is healthy
    Returns True if connection is successful
    """
    engine = engine or get_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection check: SUCCESS")
        return True
    except Exception as e:
        logger.error(f"Database connection check: FAILED - {e}")
        return False


# Export
__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "get_engine",
    "init_db",
    "check_db_connection",
]

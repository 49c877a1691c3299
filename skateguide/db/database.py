"""
Database connection and session management
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from skateguide.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, **kwargs):
    """Create an engine, with SQLite-specific connection arguments when needed"""
    if database_url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        sqlite_engine = create_engine(database_url, connect_args=connect_args, **kwargs)
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        **kwargs
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db_session():
    """Get a new database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Alias used as the FastAPI dependency
get_db = get_db_session


def init_db(bind=None):
    """Create all tables"""
    # Models must be imported so they are registered on Base.metadata
    from skateguide.db import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

from sqlalchemy import create_engine, Column, DateTime, JSON, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from app.core.config import settings
from app.core.logging_config import logger

DATABASE_URL = settings.DATABASE_URL

engine_options = {
    "pool_pre_ping": True,   # Test connections before using
    "echo": False,           # Set to True for debugging SQL logs
    "future": True,
}

# SQLite (local runs and tests) uses its own pool implementation
if not DATABASE_URL.startswith("sqlite"):
    engine_options.update(
        pool_size=10,        # Base connection pool size
        max_overflow=20,     # Max connections beyond pool_size
        pool_timeout=30,     # Timeout for getting connection (seconds)
        pool_recycle=3600,   # Recycle connections after 1 hour
    )

engine = create_engine(DATABASE_URL, **engine_options)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

logger.info("Database engine configured")


class Base(DeclarativeBase):
    pass

class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_session_factory() -> sessionmaker:
    """
    Session factory for work that outlives the request (background tasks).

    Background tasks must not reuse the request session, which is closed
    once the response is produced.
    """
    return SessionLocal

import logging
import os
import re
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

# Get environment-specific pool settings
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
ENABLE_QUERY_LOGGING = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))


def _engine_options(url: str) -> dict:
    """SQLite has no connection pool to tune and needs cross-thread access"""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Test connections before using
        "pool_recycle": POOL_RECYCLE,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
    }


try:
    engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))
    logger.info("✅ Database engine created successfully")
    if not DATABASE_URL.startswith("sqlite"):
        logger.info(
            f"📊 Connection pool: size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}, timeout={POOL_TIMEOUT}s"
        )
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise


_TABLE_PATTERN = re.compile(r'\b(?:FROM|INTO|UPDATE)\s+"?(\w+)"?', re.IGNORECASE)


def describe_query(statement: str, parameters) -> str:
    """Short label for a statement: main table plus the unit it was scoped to, when bound by name"""
    match = _TABLE_PATTERN.search(statement or "")
    label = match.group(1) if match else "?"
    if isinstance(parameters, dict):
        unit = next((v for k, v in parameters.items() if k.startswith("barbershop_id")), None)
        if unit:
            label += f" unit={unit}"
    return label


def install_query_logging(target, threshold: float = SLOW_QUERY_THRESHOLD) -> None:
    """Warn about statements slower than ``threshold`` seconds"""

    @event.listens_for(target, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(target, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, parameters, context, _executemany):
        total = time.perf_counter() - conn.info["query_start_time"].pop(-1)
        if total > threshold:
            label = describe_query(statement, parameters)
            logger.warning(f"🐌 Slow query ({total:.2f}s) on {label}: {statement[:200]}")


if ENABLE_QUERY_LOGGING:
    install_query_logging(engine)
    logger.info(f"📊 Slow query logging enabled (threshold: {SLOW_QUERY_THRESHOLD}s)")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

"""Engine, session factory and transaction helper for the relational store."""

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from grooming_scheduler.config import settings
from grooming_scheduler.errors import ConflictError, DependencyError

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(url: Optional[str] = None) -> Engine:
    """Create an engine for ``url`` (defaults to DATABASE_URL).

    SQLite gets foreign keys switched on and a busy timeout so concurrent
    writers queue instead of failing; other backends get the pool settings.
    """
    cfg = settings.database
    url = url or cfg.url

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": cfg.pool_timeout},
            echo=False,
        )

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        engine = create_engine(
            url,
            pool_pre_ping=True,  # Test connections before using
            pool_recycle=cfg.pool_recycle,
            pool_size=cfg.pool_size,
            max_overflow=cfg.max_overflow,
            pool_timeout=cfg.pool_timeout,
            echo=False,
        )
        logger.info(
            "Connection pool: size=%d, max_overflow=%d, timeout=%ds",
            cfg.pool_size, cfg.max_overflow, cfg.pool_timeout,
        )

    if cfg.slow_query_threshold_sec > 0:
        _attach_slow_query_logging(engine, cfg.slow_query_threshold_sec)
    return engine


def _attach_slow_query_logging(engine: Engine, threshold: float) -> None:
    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > threshold:
            logger.warning("Slow query (%.2fs): %s...", total, statement[:200])


engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    import grooming_scheduler.models  # noqa: F401  (registers mappers)

    Base.metadata.create_all(bind=bind or engine, checkfirst=True)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, conflict_message: str = "Conflicting write") -> Iterator[Session]:
    """Commit everything done inside the block as one unit, or nothing.

    IntegrityError becomes ConflictError (a unique or admission constraint
    rejected the write); OperationalError becomes DependencyError.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("Write rejected by constraint: %s", conflict_message)
        raise ConflictError(conflict_message) from exc
    except OperationalError as exc:
        db.rollback()
        logger.error("Data store unavailable: %s", exc)
        raise DependencyError("Data store unavailable, retry later") from exc
    except Exception:
        db.rollback()
        raise

"""Database engine, session factory, and dependency injection."""

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from user_admin.core.config import settings
from user_admin.core.exceptions import ConflictError, PersistenceError, UserAdminError

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 20,
        "max_overflow": 40,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    **_engine_options(settings.DATABASE_URL),
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session, operation: str) -> Iterator[Session]:
    """Run one service operation as a single transaction.

    Reads, writes and the audit insert made inside the block are committed
    together. Business failures roll back and propagate unchanged; database
    faults roll back, get logged, and surface as a generic PersistenceError.
    """
    try:
        yield db
        db.commit()
    except UserAdminError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity violation while %s: %s", operation, exc.orig)
        raise ConflictError(f"Conflict while {operation}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database error while %s", operation)
        raise PersistenceError(f"Error {operation}") from exc

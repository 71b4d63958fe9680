from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from intake_engine.core.config import get_settings
from intake_engine.core.exceptions import TransientStorageError

settings = get_settings()

engine = create_engine(
    str(settings.database_url),
    future=True,
    pool_pre_ping=True,
)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a DB session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """
    FastAPI dependency for collaborators that open their own short
    transactions (sequence counters, notification sink).
    """
    return SessionLocal


def is_transient(exc: BaseException) -> bool:
    """Lock timeouts, serialization failures and dropped connections."""
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


@contextmanager
def storage_errors(db: Session) -> Generator[Session, None, None]:
    """
    Guard the reads a service does outside a unit of work.

    Retryable driver errors roll the session back and come out as
    TransientStorageError, the same as failures inside ``unit_of_work``.
    Other driver errors propagate unchanged.
    """
    try:
        yield db
    except DBAPIError as exc:
        db.rollback()
        if is_transient(exc):
            raise TransientStorageError("Storage is busy, please retry.") from exc
        raise


def commit_or_raise(db: Session) -> None:
    """
    Commit the current unit of work.

    Any failure rolls the whole unit back; retryable driver errors are
    re-raised as TransientStorageError so raw storage exceptions never leak
    out of the services.
    """
    try:
        db.commit()
    except DBAPIError as exc:
        db.rollback()
        if is_transient(exc):
            raise TransientStorageError("Storage is busy, please retry.") from exc
        raise


@contextmanager
def unit_of_work(db: Session) -> Generator[Session, None, None]:
    """
    Run a block of writes as one atomic unit on ``db``.

    Usage:
        with unit_of_work(db):
            db.query(Bed).filter(...).update(...)
            db.query(Ward).filter(...).update(...)

    Either every statement in the block commits or none does.
    """
    try:
        yield db
    except DBAPIError as exc:
        db.rollback()
        if is_transient(exc):
            raise TransientStorageError("Storage is busy, please retry.") from exc
        raise
    except Exception:
        db.rollback()
        raise
    commit_or_raise(db)

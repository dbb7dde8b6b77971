import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings
from app.core.errors import StorageUnavailable

logger = logging.getLogger(__name__)

engine = create_engine(settings.DATABASE_URL, future=True, pool_pre_ping=True)
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)
Base = declarative_base()


def get_db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def unit_of_work(db: Session, operation: str):
    """Commit on success, roll back on any failure.

    Driver level failures (lost connection, statement timeout) surface as
    ``StorageUnavailable``; constraint violations and domain errors propagate
    unchanged so callers can react to them.
    """

    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except DBAPIError as exc:
        db.rollback()
        logger.exception("storage_unavailable", extra={"operation": operation})
        raise StorageUnavailable() from exc
    except Exception:
        db.rollback()
        raise

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from transfer_tracker.config import settings
from transfer_tracker.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

engine = create_engine(settings.database_url_normalized, echo=settings.database_echo, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    with SessionLocal() as db:
        yield db


@contextmanager
def store_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and raise ``StoreUnavailableError`` when a database call fails."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Store call failed during %s', action)
        raise StoreUnavailableError(f'Could not {action}; please try again') from exc

"""Transaction boundary shared by the services"""

import logging
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from lendbook.domain.exceptions import ConcurrentUpdateError, DomainException, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session, operation: str, commit: bool = True) -> Iterator[Session]:
    """
    Commit on success (unless commit=False, for reads), roll back on any error.

    SQLAlchemy failures are surfaced as StoreError; a failed version check
    (another writer got there first) as ConcurrentUpdateError.
    """
    try:
        yield db
        if commit:
            db.commit()
    except DomainException:
        db.rollback()
        raise
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent update during {operation}: {e}")
        raise ConcurrentUpdateError("The record was modified by another request, please retry") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store error during {operation}: {e}")
        raise StoreError(f"Could not complete {operation}") from e

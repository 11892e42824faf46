"""
Optimistic concurrency helpers.

Trip, TripShare and BudgetAlert carry a ``version`` column registered as the
mapper's ``version_id_col``: every UPDATE is issued as
``... WHERE id = :id AND version = :expected`` and SQLAlchemy raises
StaleDataError when no row matched. State transitions additionally re-read
the stored row right before writing so a transition that already happened
in another request is reported instead of overwritten.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from triptracker.core.errors import ConcurrentModificationError, NotFoundError, TripTrackerError

logger = logging.getLogger(__name__)


def ensure_current(db: Session, instance) -> None:
    """
    Compare the in-memory version (and status, where the model has one) of
    instance with the stored row.

    Raises:
        NotFoundError: the row no longer exists
        ConcurrentModificationError: the row was changed since it was loaded
    """
    model = type(instance)
    columns = [model.version]
    has_status = hasattr(model, "status")
    if has_status:
        columns.append(model.status)

    row = db.execute(select(*columns).where(model.id == instance.id)).first()
    if row is None:
        raise NotFoundError(f"{model.__name__} {instance.id} not found")

    if row[0] != instance.version or (has_status and row[1] != instance.status):
        logger.info(
            f"Concurrent change detected on {model.__name__} {instance.id}: "
            f"loaded version {instance.version}, stored version {row[0]}"
        )
        raise ConcurrentModificationError(
            f"{model.__name__} {instance.id} was modified by another request",
            details={"entity": model.__name__, "id": instance.id},
        )


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Commit the unit of work on success, roll everything back on failure.
    StaleDataError raised while flushing becomes ConcurrentModificationError.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning(f"Optimistic lock failed, transaction rolled back: {exc}")
        raise ConcurrentModificationError("Record was modified by another request") from exc
    except TripTrackerError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.error("Transaction failed and was rolled back", exc_info=True)
        raise

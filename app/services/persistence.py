# app/services/persistence.py
"""
Transaction boundary shared by every ledger mutation.

A mutation either commits as a whole (record + its full allocation set)
or is rolled back as a whole. Database failures surface as
LedgerStorageError; the caller may resubmit, since mutations are
replace-by-id and not increments.
"""

from contextlib import contextmanager
from typing import Iterator

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.services.ledger_errors import (
    LedgerError,
    LedgerNotFoundError,
    LedgerStorageError,
    LedgerValidationError,
)

logger = structlog.get_logger(__name__)


@contextmanager
def atomic_write(db: Session, operation: str, **context) -> Iterator[None]:
    """
    Usage:
        with atomic_write(db, "transaction_update", transaction_id=tx_id):
            ... modify session ...
    Commits on clean exit, rolls back on any error.
    """
    try:
        yield
        db.commit()
    except LedgerError as exc:
        db.rollback()
        logger.info("ledger_write_rejected", operation=operation, reason=exc.message, **context)
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("ledger_write_failed", operation=operation, exc_info=True, **context)
        raise LedgerStorageError(f"Unable to save changes ({operation})") from exc


def get_existing(db: Session, model, record_id: str, label: str):
    """Load a row by primary key or raise LedgerNotFoundError."""
    if not record_id:
        raise LedgerValidationError("id is required")
    record = db.get(model, record_id)
    if record is None:
        raise LedgerNotFoundError(f"{label} not found")
    return record

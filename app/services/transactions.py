# app/services/transactions.py
"""
Transaction ledger: actual cash movements (INCOME / EXPENSE).

A transaction and its allocation set are written together or not at all.
If the allocations do not add up to amount_original, nothing is saved,
and on update the stored transaction keeps its previous values.
"""

from typing import Any, Optional

import structlog
from sqlalchemy.orm import Session

from models import FinanceTransaction, TransactionAllocation
from app.services.allocations import replace_allocations, validate_for_parent
from app.services.budget_items import budget_item_ids
from app.services.ledger_helpers import build_transaction_fields
from app.services.persistence import atomic_write, get_existing
from app.services.settings_service import get_settings, warn_unknown_account

logger = structlog.get_logger(__name__)


def save_transaction(
    db: Session,
    data: dict,
    allocations: Any = None,
    transaction_id: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> FinanceTransaction:
    """
    Create (transaction_id=None) or fully replace a transaction.

    `allocations` is the raw list of {budget_item_id, amount_original}
    rows; it always replaces the stored set, it is never merged into it.
    """
    existing = None
    if transaction_id is not None:
        existing = get_existing(db, FinanceTransaction, transaction_id, "Transaction")

    settings = get_settings(db)
    fields = build_transaction_fields(data, settings.reporting_currency)
    known_ids = budget_item_ids(db)

    operation = "transaction_update" if existing is not None else "transaction_create"
    with atomic_write(db, operation, transaction_id=transaction_id):
        if existing is None:
            tx = FinanceTransaction(**fields, created_by=actor_id, updated_by=actor_id)
            db.add(tx)
        else:
            tx = existing
            for key, value in fields.items():
                setattr(tx, key, value)
            tx.updated_by = actor_id

        rows = validate_for_parent(tx, allocations, known_ids)
        db.flush()
        replace_allocations(db, TransactionAllocation, "transaction_id", tx.id, rows)

    db.refresh(tx)
    warn_unknown_account(settings, tx.account, transaction_id=tx.id)
    logger.info(
        "transaction_saved",
        transaction_id=tx.id,
        transaction_type=tx.transaction_type,
        currency=tx.currency,
        allocations=len(rows),
        created=existing is None,
        actor_id=actor_id,
    )
    return tx


def delete_transaction(db: Session, transaction_id: str) -> None:
    """Remove the transaction and all of its allocations."""
    get_existing(db, FinanceTransaction, transaction_id, "Transaction")

    with atomic_write(db, "transaction_delete", transaction_id=transaction_id):
        removed = (
            db.query(TransactionAllocation)
            .filter(TransactionAllocation.transaction_id == transaction_id)
            .delete(synchronize_session=False)
        )
        db.query(FinanceTransaction).filter(FinanceTransaction.id == transaction_id).delete(
            synchronize_session=False
        )

    logger.info("transaction_deleted", transaction_id=transaction_id, allocations_removed=removed)

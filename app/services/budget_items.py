# app/services/budget_items.py
"""
Budget line registry: the chart of planned cost categories.

Updates replace every field. Deleting a line removes every transaction and
sponsorship allocation pointing at it in the same commit, so rollups never
see orphaned allocations.
"""

import structlog
from sqlalchemy.orm import Session

from models import BudgetItem, SponsorshipAllocation, TransactionAllocation
from app.services.ledger_helpers import build_budget_item_fields
from app.services.persistence import atomic_write, get_existing
from app.services.settings_service import get_settings

logger = structlog.get_logger(__name__)


def create_budget_item(db: Session, data: dict) -> BudgetItem:
    settings = get_settings(db)
    fields = build_budget_item_fields(data, settings.reporting_currency)

    item = BudgetItem(**fields)
    with atomic_write(db, "budget_item_create"):
        db.add(item)

    db.refresh(item)
    logger.info("budget_item_created", budget_item_id=item.id, macro_category=item.macro_category)
    return item


def update_budget_item(db: Session, item_id: str, data: dict) -> BudgetItem:
    item = get_existing(db, BudgetItem, item_id, "Budget item")
    settings = get_settings(db)
    fields = build_budget_item_fields(data, settings.reporting_currency)

    with atomic_write(db, "budget_item_update", budget_item_id=item_id):
        for key, value in fields.items():
            setattr(item, key, value)

    db.refresh(item)
    logger.info("budget_item_updated", budget_item_id=item.id)
    return item


def delete_budget_item(db: Session, item_id: str) -> None:
    get_existing(db, BudgetItem, item_id, "Budget item")

    with atomic_write(db, "budget_item_delete", budget_item_id=item_id):
        tx_removed = (
            db.query(TransactionAllocation)
            .filter(TransactionAllocation.budget_item_id == item_id)
            .delete(synchronize_session=False)
        )
        sp_removed = (
            db.query(SponsorshipAllocation)
            .filter(SponsorshipAllocation.budget_item_id == item_id)
            .delete(synchronize_session=False)
        )
        db.query(BudgetItem).filter(BudgetItem.id == item_id).delete(synchronize_session=False)

    logger.info(
        "budget_item_deleted",
        budget_item_id=item_id,
        transaction_allocations_removed=tx_removed,
        sponsorship_allocations_removed=sp_removed,
    )


def list_macro_categories(db: Session) -> list[str]:
    """Distinct macro categories, alphabetical."""
    rows = (
        db.query(BudgetItem.macro_category)
        .distinct()
        .order_by(BudgetItem.macro_category)
        .all()
    )
    return [row[0] for row in rows]


def budget_item_ids(db: Session) -> set[str]:
    """Ids that allocations may target."""
    return {row[0] for row in db.query(BudgetItem.id).all()}

# app/services/sponsorships.py
"""
Sponsorship ledger: pledged / paid sponsor commitments.

Allocations split the pledged amount. Status is whatever the caller sends;
inconsistencies between status and amounts are reported as warnings
(logged, returned to the caller) but never block a save. A cancelled
sponsorship keeps its allocation rows; reporting ignores them.
"""

from decimal import Decimal
from typing import Any, Optional

import structlog
from sqlalchemy.orm import Session

from models import Sponsorship, SponsorshipAllocation, SponsorshipStatus
from app.services.allocations import replace_allocations, validate_for_parent
from app.services.budget_items import budget_item_ids
from app.services.ledger_helpers import build_sponsorship_fields
from app.services.persistence import atomic_write, get_existing
from app.services.settings_service import get_settings, warn_unknown_account

logger = structlog.get_logger(__name__)

# Forward moves of the status machine; "cancelled" is reachable from anywhere.
STATUS_TRANSITIONS = {
    SponsorshipStatus.PLEDGED.value: {
        SponsorshipStatus.PARTIALLY_PAID.value,
        SponsorshipStatus.PAID.value,
    },
    SponsorshipStatus.PARTIALLY_PAID.value: {SponsorshipStatus.PAID.value},
    SponsorshipStatus.PAID.value: set(),
    SponsorshipStatus.CANCELLED.value: set(),
}


def status_warnings(
    status: str,
    pledged: Decimal,
    paid: Decimal,
    previous_status: Optional[str] = None,
) -> list[str]:
    """Human-readable consistency warnings for a sponsorship's status."""
    warnings: list[str] = []
    pledged = Decimal(pledged)
    paid = Decimal(paid)

    if status == SponsorshipStatus.PLEDGED.value and paid > 0:
        warnings.append("Paid amount is greater than zero but status is still 'pledged'")
    if status == SponsorshipStatus.PAID.value and paid < pledged:
        warnings.append("Status is 'paid' but paid amount is below the pledged amount")
    if status == SponsorshipStatus.PARTIALLY_PAID.value and paid == 0:
        warnings.append("Status is 'partially_paid' but nothing has been paid")

    if (
        previous_status is not None
        and status != previous_status
        and status != SponsorshipStatus.CANCELLED.value
        and status not in STATUS_TRANSITIONS.get(previous_status, set())
    ):
        warnings.append(f"Unusual status change: {previous_status} -> {status}")

    return warnings


def save_sponsorship(
    db: Session,
    data: dict,
    allocations: Any = None,
    sponsorship_id: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> tuple[Sponsorship, list[str]]:
    """
    Create (sponsorship_id=None) or fully replace a sponsorship and its
    allocation set. Returns the saved row and any status warnings.
    """
    existing = None
    if sponsorship_id is not None:
        existing = get_existing(db, Sponsorship, sponsorship_id, "Sponsorship")

    settings = get_settings(db)
    fields = build_sponsorship_fields(data, settings.reporting_currency)
    known_ids = budget_item_ids(db)
    previous_status = existing.status if existing is not None else None

    operation = "sponsorship_update" if existing is not None else "sponsorship_create"
    with atomic_write(db, operation, sponsorship_id=sponsorship_id):
        if existing is None:
            sponsorship = Sponsorship(**fields, created_by=actor_id, updated_by=actor_id)
            db.add(sponsorship)
        else:
            sponsorship = existing
            for key, value in fields.items():
                setattr(sponsorship, key, value)
            sponsorship.updated_by = actor_id

        rows = validate_for_parent(sponsorship, allocations, known_ids)
        db.flush()
        replace_allocations(db, SponsorshipAllocation, "sponsorship_id", sponsorship.id, rows)

    db.refresh(sponsorship)

    warnings = status_warnings(
        sponsorship.status,
        sponsorship.pledged_amount_original,
        sponsorship.paid_amount_original,
        previous_status,
    )
    for message in warnings:
        logger.warning("sponsorship_status_inconsistent", sponsorship_id=sponsorship.id, detail=message)
    warn_unknown_account(settings, sponsorship.account, sponsorship_id=sponsorship.id)

    logger.info(
        "sponsorship_saved",
        sponsorship_id=sponsorship.id,
        status=sponsorship.status,
        allocations=len(rows),
        created=existing is None,
        actor_id=actor_id,
    )
    return sponsorship, warnings


def delete_sponsorship(db: Session, sponsorship_id: str) -> None:
    """Remove the sponsorship and all of its allocations."""
    get_existing(db, Sponsorship, sponsorship_id, "Sponsorship")

    with atomic_write(db, "sponsorship_delete", sponsorship_id=sponsorship_id):
        removed = (
            db.query(SponsorshipAllocation)
            .filter(SponsorshipAllocation.sponsorship_id == sponsorship_id)
            .delete(synchronize_session=False)
        )
        db.query(Sponsorship).filter(Sponsorship.id == sponsorship_id).delete(
            synchronize_session=False
        )

    logger.info("sponsorship_deleted", sponsorship_id=sponsorship_id, allocations_removed=removed)

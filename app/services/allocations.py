# app/services/allocations.py
"""
Allocation parsing, validation, and replacement.

An allocation splits part of a parent record (transaction or sponsorship)
onto one budget item. Per parent, the allocations must add up to the
parent's allocation_total() to the cent, or be absent.

Input policy is lenient on rows and strict on totals: malformed rows are
dropped before the sum check, and the sum check then decides.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional, Protocol

import structlog
from sqlalchemy.orm import Session

from app.services.ledger_errors import LedgerValidationError
from app.services.ledger_helpers import normalize_text, parse_decimal, to_cents

logger = structlog.get_logger(__name__)

ALLOCATION_TOLERANCE = Decimal("0.01")


class Allocatable(Protocol):
    """A record whose amount can be split across budget items."""

    def allocation_total(self) -> Decimal:
        ...


@dataclass(frozen=True)
class AllocationInput:
    budget_item_id: str
    amount: Decimal


def parse_allocations(
    raw: Any,
    known_budget_item_ids: Optional[Iterable[str]] = None,
) -> list[AllocationInput]:
    """
    Turn the raw `allocations` payload into clean rows.

    Dropped silently:
    - rows that are not dicts
    - rows with an empty budget_item_id, or one not in known_budget_item_ids
    - rows whose amount is not a number or is <= 0

    Rows for the same budget item are merged, first-seen order kept.
    """
    if not isinstance(raw, (list, tuple)):
        return []

    known = set(known_budget_item_ids) if known_budget_item_ids is not None else None
    merged: dict[str, Decimal] = {}

    for row in raw:
        if not isinstance(row, dict):
            continue
        budget_item_id = normalize_text(row.get("budget_item_id"))
        amount = parse_decimal(row.get("amount_original"))
        if not budget_item_id or amount is None:
            continue
        if known is not None and budget_item_id not in known:
            continue
        amount = to_cents(amount)
        if amount <= 0:
            continue
        merged[budget_item_id] = merged.get(budget_item_id, Decimal("0")) + amount

    return [AllocationInput(budget_item_id=k, amount=v) for k, v in merged.items()]


def allocations_total(allocations: Iterable[AllocationInput]) -> Decimal:
    return sum((a.amount for a in allocations), Decimal("0"))


def validate_allocations(
    allocations: list[AllocationInput],
    required_total: Decimal,
    allow_empty: bool = True,
) -> None:
    """
    Raise LedgerValidationError unless the allocations add up to required_total.

    With allow_empty, an empty list means "unallocated" and always passes.
    """
    if not allocations and allow_empty:
        return

    allocated = allocations_total(allocations)
    required_total = Decimal(required_total)
    if abs(allocated - required_total) >= ALLOCATION_TOLERANCE:
        raise LedgerValidationError(
            f"Allocations total ({allocated:.2f}) must match amount ({required_total:.2f})"
        )


def validate_for_parent(
    parent: Allocatable,
    raw_allocations: Any,
    known_budget_item_ids: Iterable[str],
) -> list[AllocationInput]:
    """
    Parse + validate against the parent's own total.

    A payload that carried rows, all of which were dropped, is still checked,
    so garbage input cannot slip through as "unallocated".
    """
    allocations = parse_allocations(raw_allocations, known_budget_item_ids)
    submitted_rows = isinstance(raw_allocations, (list, tuple)) and len(raw_allocations) > 0
    validate_allocations(allocations, parent.allocation_total(), allow_empty=not submitted_rows)
    return allocations


def replace_allocations(
    db: Session,
    model,
    parent_key: str,
    parent_id: str,
    allocations: list[AllocationInput],
) -> int:
    """
    Delete every allocation of the parent, then insert the new set.

    Runs inside the caller's transaction: flushes, never commits.
    Returns the number of rows removed.
    """
    parent_column = getattr(model, parent_key)
    removed = (
        db.query(model)
        .filter(parent_column == parent_id)
        .delete(synchronize_session=False)
    )

    # The bulk DELETE is already executed, so re-inserting an existing
    # (parent, budget item) pair cannot trip the unique key.
    db.add_all(
        [
            model(
                **{parent_key: parent_id},
                budget_item_id=row.budget_item_id,
                amount_original=row.amount,
            )
            for row in allocations
        ]
    )
    db.flush()

    logger.debug(
        "allocations_replaced",
        table=model.__tablename__,
        parent_id=parent_id,
        removed=removed,
        inserted=len(allocations),
    )
    return removed

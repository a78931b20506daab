# routes_event_finance.py
"""
Event finance endpoints.

- GET  /event-finance          full dataset (read surface)
- POST /event-finance          one mutation: {entity, action, id?, data?, allocations?}
- GET  /event-finance/report   rollups in the reporting currency
- GET  /event-finance/export   xlsx workbook (budget plan, transactions, sponsorships)
"""

from decimal import Decimal
from typing import Any, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from models import (
    BudgetItem,
    EventFinanceSettings,
    FinanceTransaction,
    Sponsorship,
    TransactionAllocation,
)
from app.deps import get_actor_id, get_db
from app.services.budget_items import (
    create_budget_item,
    delete_budget_item,
    list_macro_categories,
    update_budget_item,
)
from app.services.currency import secondary_currency
from app.services.export import build_export_frames, export_filename, write_export_workbook
from app.services.ledger_errors import (
    LedgerNotFoundError,
    LedgerStorageError,
    LedgerValidationError,
)
from app.services.reporting import (
    build_budget_line_rollups,
    build_finance_report,
    load_finance_dataset,
    report_to_dict,
)
from app.services.settings_service import update_settings
from app.services.sponsorships import delete_sponsorship, save_sponsorship
from app.services.transactions import delete_transaction, save_transaction

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/event-finance")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class MutationPayload(BaseModel):
    entity: Literal["settings", "budget_item", "transaction", "sponsorship"]
    action: Literal["create", "update", "delete"]
    id: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    allocations: Optional[list[Any]] = None


# -------------------------------------------------------------------
# Serialization
# -------------------------------------------------------------------

def _amount(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_settings(settings: EventFinanceSettings) -> dict:
    return {
        "event_name": settings.event_name,
        "reporting_currency": settings.reporting_currency,
        "secondary_currency": secondary_currency(settings.reporting_currency),
        "exchange_rate": float(settings.exchange_rate),
        "accounts": list(settings.accounts or []),
        "notes": settings.notes,
        "updated_at": _iso(settings.updated_at),
    }


def serialize_budget_item(item: BudgetItem) -> dict:
    return {
        "id": item.id,
        "category_name": item.category_name,
        "macro_category": item.macro_category,
        "unit_cost_original": _amount(item.unit_cost_original),
        "currency": item.currency,
        "quantity": _amount(item.quantity),
        "planned_total": _amount(item.planned_total),
        "notes": item.notes,
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def serialize_allocation(alloc) -> dict:
    parent_key = "transaction_id" if isinstance(alloc, TransactionAllocation) else "sponsorship_id"
    return {
        "id": alloc.id,
        parent_key: getattr(alloc, parent_key),
        "budget_item_id": alloc.budget_item_id,
        "amount_original": _amount(alloc.amount_original),
        "created_at": _iso(alloc.created_at),
    }


def serialize_transaction(tx: FinanceTransaction, with_allocations: bool = False) -> dict:
    row = {
        "id": tx.id,
        "transaction_type": tx.transaction_type,
        "transaction_date": _iso(tx.transaction_date),
        "description": tx.description,
        "party": tx.party,
        "amount_original": _amount(tx.amount_original),
        "currency": tx.currency,
        "payment_method": tx.payment_method,
        "account": tx.account,
        "notes": tx.notes,
        "created_by": tx.created_by,
        "updated_by": tx.updated_by,
        "created_at": _iso(tx.created_at),
        "updated_at": _iso(tx.updated_at),
    }
    if with_allocations:
        row["allocations"] = [serialize_allocation(a) for a in tx.allocations]
    return row


def serialize_sponsorship(sp: Sponsorship, with_allocations: bool = False) -> dict:
    row = {
        "id": sp.id,
        "sponsor_name": sp.sponsor_name,
        "description": sp.description,
        "pledged_amount_original": _amount(sp.pledged_amount_original),
        "paid_amount_original": _amount(sp.paid_amount_original),
        "currency": sp.currency,
        "status": sp.status,
        "expected_date": _iso(sp.expected_date),
        "received_date": _iso(sp.received_date),
        "payment_method": sp.payment_method,
        "account": sp.account,
        "notes": sp.notes,
        "created_by": sp.created_by,
        "updated_by": sp.updated_by,
        "created_at": _iso(sp.created_at),
        "updated_at": _iso(sp.updated_at),
    }
    if with_allocations:
        row["allocations"] = [serialize_allocation(a) for a in sp.allocations]
    return row


# -------------------------------------------------------------------
# Read surface
# -------------------------------------------------------------------

@router.get("")
def finance_dataset(db: Session = Depends(get_db)):
    dataset = load_finance_dataset(db)
    return {
        "settings": serialize_settings(dataset.settings),
        "budget_items": [serialize_budget_item(i) for i in dataset.budget_items],
        "macro_categories": list_macro_categories(db),
        "transactions": [serialize_transaction(t) for t in dataset.transactions],
        "transaction_allocations": [serialize_allocation(a) for a in dataset.transaction_allocations],
        "sponsorships": [serialize_sponsorship(s) for s in dataset.sponsorships],
        "sponsorship_allocations": [serialize_allocation(a) for a in dataset.sponsorship_allocations],
    }


@router.get("/report")
def finance_report(db: Session = Depends(get_db)):
    report = build_finance_report(load_finance_dataset(db))
    return report_to_dict(report)


@router.get("/export")
def finance_export(db: Session = Depends(get_db)):
    dataset = load_finance_dataset(db)
    frames = build_export_frames(dataset, build_budget_line_rollups(dataset))
    content = write_export_workbook(frames)
    filename = export_filename()

    logger.info("finance_export_built", filename=filename, size=len(content))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# -------------------------------------------------------------------
# Mutation surface
# -------------------------------------------------------------------

def _require_id(payload: MutationPayload) -> str:
    record_id = (payload.id or "").strip()
    if not record_id:
        raise LedgerValidationError("id is required")
    return record_id


@router.post("")
def finance_mutation(
    payload: MutationPayload,
    db: Session = Depends(get_db),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    One entry point per the back-office UI: entity + action.
    Allocations, when relevant, always replace the stored set.
    """
    entity, action = payload.entity, payload.action

    if entity == "settings":
        if action != "update":
            raise LedgerValidationError("settings only support the update action")
        settings = update_settings(db, payload.data, actor_id=actor_id)
        return {"ok": True, "settings": serialize_settings(settings)}

    if action == "delete":
        record_id = _require_id(payload)
        if entity == "budget_item":
            delete_budget_item(db, record_id)
        elif entity == "transaction":
            delete_transaction(db, record_id)
        else:
            delete_sponsorship(db, record_id)
        return {"ok": True}

    record_id = _require_id(payload) if action == "update" else None

    if entity == "budget_item":
        if record_id is None:
            item = create_budget_item(db, payload.data)
        else:
            item = update_budget_item(db, record_id, payload.data)
        return {"ok": True, "budget_item": serialize_budget_item(item)}

    if entity == "transaction":
        tx = save_transaction(
            db,
            payload.data,
            payload.allocations,
            transaction_id=record_id,
            actor_id=actor_id,
        )
        return {"ok": True, "transaction": serialize_transaction(tx, with_allocations=True)}

    sponsorship, warnings = save_sponsorship(
        db,
        payload.data,
        payload.allocations,
        sponsorship_id=record_id,
        actor_id=actor_id,
    )
    return {
        "ok": True,
        "sponsorship": serialize_sponsorship(sponsorship, with_allocations=True),
        "warnings": warnings,
    }


# -------------------------------------------------------------------
# Error mapping
# -------------------------------------------------------------------

def register_ledger_error_handlers(app: FastAPI) -> None:
    """
    validation -> 400, not found -> 404, storage -> 500.
    Body is always {"error": "<message>"}.
    """

    @app.exception_handler(LedgerValidationError)
    async def _validation_error(request: Request, exc: LedgerValidationError):
        return JSONResponse({"error": exc.message}, status_code=400)

    @app.exception_handler(LedgerNotFoundError)
    async def _not_found_error(request: Request, exc: LedgerNotFoundError):
        return JSONResponse({"error": exc.message}, status_code=404)

    @app.exception_handler(LedgerStorageError)
    async def _storage_error(request: Request, exc: LedgerStorageError):
        return JSONResponse({"error": exc.message}, status_code=500)

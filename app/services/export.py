# app/services/export.py
"""
Tabular export of the ledger: one workbook, three sheets.

- Budget Plan:   per-line rollup in each line's own currency
- Transactions:  raw transactions + their allocation split
- Sponsorships:  raw sponsorships + their allocation split
"""

from __future__ import annotations

from datetime import date
from io import BytesIO
from typing import Iterable, Optional

import pandas as pd

from app.services.currency import round_money
from app.services.reporting import BudgetLineRollup, FinanceDataset

BUDGET_PLAN_COLUMNS = ["Category", "Macro", "Currency", "Planned", "Spent", "Cash In", "Sponsored"]
TRANSACTION_COLUMNS = [
    "Date",
    "Type",
    "Description",
    "Party / Vendor",
    "Amount",
    "Currency",
    "Payment Method",
    "Account",
    "Notes",
    "Allocations",
]
SPONSORSHIP_COLUMNS = [
    "Sponsor",
    "Status",
    "Pledged",
    "Paid",
    "Currency",
    "Expected Date",
    "Received Date",
    "Payment Method",
    "Account",
    "Notes",
    "Allocations",
]


def _num(value) -> float:
    return float(round_money(value))


def _iso(value: Optional[date]) -> str:
    return value.isoformat() if value else ""


def allocation_summary(allocations: Iterable, item_names: dict[str, str]) -> str:
    """'Venue: 500.00; Catering: 250.00' ('Unknown' for deleted lines)."""
    return "; ".join(
        f"{item_names.get(alloc.budget_item_id, 'Unknown')}: {round_money(alloc.amount_original):.2f}"
        for alloc in allocations
    )


def build_export_frames(
    dataset: FinanceDataset,
    lines: list[BudgetLineRollup],
) -> dict[str, pd.DataFrame]:
    item_names = {item.id: item.category_name for item in dataset.budget_items}

    tx_allocs: dict[str, list] = {}
    for alloc in dataset.transaction_allocations:
        tx_allocs.setdefault(alloc.transaction_id, []).append(alloc)

    sp_allocs: dict[str, list] = {}
    for alloc in dataset.sponsorship_allocations:
        sp_allocs.setdefault(alloc.sponsorship_id, []).append(alloc)

    budget_plan = pd.DataFrame(
        [
            [
                line.category_name,
                line.macro_category,
                line.currency,
                _num(line.planned),
                _num(line.spent),
                _num(line.income),
                _num(line.sponsored),
            ]
            for line in lines
        ],
        columns=BUDGET_PLAN_COLUMNS,
    )

    transactions = pd.DataFrame(
        [
            [
                _iso(tx.transaction_date),
                tx.transaction_type,
                tx.description,
                tx.party or "",
                _num(tx.amount_original),
                tx.currency,
                tx.payment_method,
                tx.account or "",
                tx.notes or "",
                allocation_summary(tx_allocs.get(tx.id, []), item_names),
            ]
            for tx in dataset.transactions
        ],
        columns=TRANSACTION_COLUMNS,
    )

    sponsorships = pd.DataFrame(
        [
            [
                sp.sponsor_name,
                sp.status,
                _num(sp.pledged_amount_original),
                _num(sp.paid_amount_original),
                sp.currency,
                _iso(sp.expected_date),
                _iso(sp.received_date),
                sp.payment_method,
                sp.account or "",
                sp.notes or "",
                allocation_summary(sp_allocs.get(sp.id, []), item_names),
            ]
            for sp in dataset.sponsorships
        ],
        columns=SPONSORSHIP_COLUMNS,
    )

    return {
        "Budget Plan": budget_plan,
        "Transactions": transactions,
        "Sponsorships": sponsorships,
    }


def write_export_workbook(frames: dict[str, pd.DataFrame]) -> bytes:
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet_name, frame in frames.items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    stamp = (today or date.today()).isoformat()
    return f"event-finance-{stamp}.xlsx"

# app/services/reporting.py
"""
Reporting engine: rollups of the event budget in the reporting currency.

Three independent record families feed the figures:
- budget items            -> planned
- transaction allocations -> spent (EXPENSE) / income (INCOME)
- sponsorship allocations -> sponsored (unless the sponsorship is cancelled)

Every contributing record is converted once, from its own native currency,
with the current exchange rate (no historical rates). Sums stay at full
Decimal precision; rounding happens in report_to_dict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from models import (
    BudgetItem,
    EventFinanceSettings,
    FinanceTransaction,
    Sponsorship,
    SponsorshipAllocation,
    SponsorshipStatus,
    TransactionAllocation,
    TransactionType,
)
from app.services.currency import convert, round_money, to_reporting_currency
from app.services.settings_service import get_settings

NO_ACCOUNT = "No account"
ZERO = Decimal("0")


# -------------------------------------------------------------------
# Read surface
# -------------------------------------------------------------------

@dataclass
class FinanceDataset:
    settings: EventFinanceSettings
    budget_items: list[BudgetItem]
    transactions: list[FinanceTransaction]
    transaction_allocations: list[TransactionAllocation]
    sponsorships: list[Sponsorship]
    sponsorship_allocations: list[SponsorshipAllocation]


def load_finance_dataset(db: Session) -> FinanceDataset:
    """Everything the UI and the rollups need, in display order."""
    settings = get_settings(db)
    return FinanceDataset(
        settings=settings,
        budget_items=db.query(BudgetItem).order_by(BudgetItem.category_name).all(),
        transactions=(
            db.query(FinanceTransaction)
            .order_by(FinanceTransaction.transaction_date.desc(), FinanceTransaction.created_at.desc())
            .all()
        ),
        transaction_allocations=(
            db.query(TransactionAllocation).order_by(TransactionAllocation.created_at).all()
        ),
        sponsorships=db.query(Sponsorship).order_by(Sponsorship.created_at.desc()).all(),
        sponsorship_allocations=(
            db.query(SponsorshipAllocation).order_by(SponsorshipAllocation.created_at).all()
        ),
    )


# -------------------------------------------------------------------
# Rollup types
# -------------------------------------------------------------------

@dataclass
class BudgetLineRollup:
    budget_item_id: str
    category_name: str
    macro_category: str
    currency: str
    # native (budget item) currency
    planned: Decimal = ZERO
    spent: Decimal = ZERO
    income: Decimal = ZERO
    sponsored: Decimal = ZERO
    # reporting currency
    planned_reporting: Decimal = ZERO
    spent_reporting: Decimal = ZERO
    income_reporting: Decimal = ZERO
    sponsored_reporting: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.income + self.sponsored - self.spent

    @property
    def balance_reporting(self) -> Decimal:
        return self.income_reporting + self.sponsored_reporting - self.spent_reporting


@dataclass
class MacroCategoryRollup:
    macro_category: str
    planned: Decimal = ZERO
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    sponsored: Decimal = ZERO
    line_count: int = 0

    @property
    def balance(self) -> Decimal:
        return self.income + self.sponsored - self.expenses


@dataclass
class AccountRollup:
    account: str
    income: Decimal = ZERO
    expense: Decimal = ZERO
    transaction_count: int = 0

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense


@dataclass
class Overview:
    planned: Decimal = ZERO
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    sponsored: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.income + self.sponsored - self.expenses


@dataclass
class FinanceReport:
    event_name: str
    reporting_currency: str
    exchange_rate: Decimal
    lines: list[BudgetLineRollup] = field(default_factory=list)
    macro_categories: list[MacroCategoryRollup] = field(default_factory=list)
    accounts: list[AccountRollup] = field(default_factory=list)
    overview: Overview = field(default_factory=Overview)


# -------------------------------------------------------------------
# Rollups
# -------------------------------------------------------------------

def build_budget_line_rollups(dataset: FinanceDataset) -> list[BudgetLineRollup]:
    """
    One rollup per budget item. Allocations whose parent record or budget
    item no longer exists are skipped.
    """
    rate = dataset.settings.exchange_rate
    reporting = dataset.settings.reporting_currency

    lines: dict[str, BudgetLineRollup] = {}
    for item in dataset.budget_items:
        planned = item.planned_total
        lines[item.id] = BudgetLineRollup(
            budget_item_id=item.id,
            category_name=item.category_name,
            macro_category=item.macro_category,
            currency=item.currency,
            planned=planned,
            planned_reporting=to_reporting_currency(planned, item.currency, rate, reporting),
        )

    tx_by_id = {tx.id: tx for tx in dataset.transactions}
    for alloc in dataset.transaction_allocations:
        line = lines.get(alloc.budget_item_id)
        tx = tx_by_id.get(alloc.transaction_id)
        if line is None or tx is None:
            continue
        amount = Decimal(alloc.amount_original)
        native = convert(amount, tx.currency, line.currency, rate, reporting)
        in_reporting = to_reporting_currency(amount, tx.currency, rate, reporting)
        if tx.transaction_type == TransactionType.EXPENSE.value:
            line.spent += native
            line.spent_reporting += in_reporting
        elif tx.transaction_type == TransactionType.INCOME.value:
            line.income += native
            line.income_reporting += in_reporting

    sponsorship_by_id = {sp.id: sp for sp in dataset.sponsorships}
    for alloc in dataset.sponsorship_allocations:
        line = lines.get(alloc.budget_item_id)
        sp = sponsorship_by_id.get(alloc.sponsorship_id)
        if line is None or sp is None or sp.status == SponsorshipStatus.CANCELLED.value:
            continue
        amount = Decimal(alloc.amount_original)
        line.sponsored += convert(amount, sp.currency, line.currency, rate, reporting)
        line.sponsored_reporting += to_reporting_currency(amount, sp.currency, rate, reporting)

    return list(lines.values())


def build_macro_category_rollups(lines: Iterable[BudgetLineRollup]) -> list[MacroCategoryRollup]:
    grouped: dict[str, MacroCategoryRollup] = {}
    for line in lines:
        macro = grouped.setdefault(line.macro_category, MacroCategoryRollup(line.macro_category))
        macro.planned += line.planned_reporting
        macro.income += line.income_reporting
        macro.expenses += line.spent_reporting
        macro.sponsored += line.sponsored_reporting
        macro.line_count += 1
    return sorted(grouped.values(), key=lambda m: m.macro_category.lower())


def build_account_rollups(dataset: FinanceDataset) -> list[AccountRollup]:
    """
    Raw transactions (not allocations) grouped by account. Configured
    accounts are listed even without activity; blank accounts land in
    NO_ACCOUNT, which always sorts last.
    """
    rate = dataset.settings.exchange_rate
    reporting = dataset.settings.reporting_currency

    summaries: dict[str, AccountRollup] = {}
    for name in dataset.settings.accounts or []:
        summaries[name] = AccountRollup(name)

    for tx in dataset.transactions:
        name = (tx.account or "").strip() or NO_ACCOUNT
        summary = summaries.setdefault(name, AccountRollup(name))
        amount = to_reporting_currency(tx.amount_original, tx.currency, rate, reporting)
        if tx.transaction_type == TransactionType.INCOME.value:
            summary.income += amount
        else:
            summary.expense += amount
        summary.transaction_count += 1

    return sorted(
        summaries.values(),
        key=lambda s: (s.account == NO_ACCOUNT, s.account.lower()),
    )


def build_overview(lines: Iterable[BudgetLineRollup]) -> Overview:
    overview = Overview()
    for line in lines:
        overview.planned += line.planned_reporting
        overview.income += line.income_reporting
        overview.expenses += line.spent_reporting
        overview.sponsored += line.sponsored_reporting
    return overview


def build_finance_report(dataset: FinanceDataset) -> FinanceReport:
    lines = build_budget_line_rollups(dataset)
    return FinanceReport(
        event_name=dataset.settings.event_name,
        reporting_currency=dataset.settings.reporting_currency,
        exchange_rate=Decimal(dataset.settings.exchange_rate),
        lines=lines,
        macro_categories=build_macro_category_rollups(lines),
        accounts=build_account_rollups(dataset),
        overview=build_overview(lines),
    )


# -------------------------------------------------------------------
# Output boundary
# -------------------------------------------------------------------

def _money(value: Decimal) -> float:
    return float(round_money(value))


def report_to_dict(report: FinanceReport) -> dict:
    """JSON-friendly report; the only place where figures get rounded."""
    return {
        "event_name": report.event_name,
        "reporting_currency": report.reporting_currency,
        "exchange_rate": float(report.exchange_rate),
        "overview": {
            "planned": _money(report.overview.planned),
            "income": _money(report.overview.income),
            "expenses": _money(report.overview.expenses),
            "sponsored": _money(report.overview.sponsored),
            "balance": _money(report.overview.balance),
        },
        "budget_lines": [
            {
                "budget_item_id": line.budget_item_id,
                "category_name": line.category_name,
                "macro_category": line.macro_category,
                "currency": line.currency,
                "planned": _money(line.planned),
                "spent": _money(line.spent),
                "income": _money(line.income),
                "sponsored": _money(line.sponsored),
                "balance": _money(line.balance),
                "planned_reporting": _money(line.planned_reporting),
                "spent_reporting": _money(line.spent_reporting),
                "income_reporting": _money(line.income_reporting),
                "sponsored_reporting": _money(line.sponsored_reporting),
                "balance_reporting": _money(line.balance_reporting),
            }
            for line in report.lines
        ],
        "macro_categories": [
            {
                "macro_category": macro.macro_category,
                "planned": _money(macro.planned),
                "income": _money(macro.income),
                "expenses": _money(macro.expenses),
                "sponsored": _money(macro.sponsored),
                "balance": _money(macro.balance),
                "line_count": macro.line_count,
            }
            for macro in report.macro_categories
        ],
        "accounts": [
            {
                "account": acc.account,
                "income": _money(acc.income),
                "expense": _money(acc.expense),
                "balance": _money(acc.balance),
                "transaction_count": acc.transaction_count,
            }
            for acc in report.accounts
        ],
    }

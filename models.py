# models.py
# Role: SQLAlchemy ORM models for the event finance ledger.
#       Five record collections (budget items, transactions, transaction
#       allocations, sponsorships, sponsorship allocations) plus the
#       singleton settings row.

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from db import Base


class Currency(str, Enum):
    EUR = "EUR"
    HUF = "HUF"


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank transfer"
    CARD = "card"
    CASH = "cash"
    OTHER = "other"


class SponsorshipStatus(str, Enum):
    PLEDGED = "pledged"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    CANCELLED = "cancelled"


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Native-currency amounts. Conversion never gets persisted.
Money = Numeric(14, 2)


class EventFinanceSettings(Base):
    """
    Singleton configuration row (id is always 1).

    exchange_rate is "secondary-currency units per one reporting-currency
    unit", e.g. 400 when reporting in EUR and 1 EUR = 400 HUF.
    """

    __tablename__ = "event_finance_settings"

    id = Column(Integer, primary_key=True, default=1)
    event_name = Column(String, nullable=False)
    reporting_currency = Column(String(3), nullable=False, default=Currency.EUR.value)
    exchange_rate = Column(Numeric(14, 6), nullable=False)
    accounts = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)


class BudgetItem(Base):
    """
    One budget line of the event plan.

    planned_total is derived on read so it can never disagree with
    unit cost and quantity after an edit.
    """

    __tablename__ = "event_finance_budget_items"

    id = Column(String(36), primary_key=True, default=new_id)
    category_name = Column(String, nullable=False)
    macro_category = Column(String, nullable=False, index=True)
    unit_cost_original = Column(Money, nullable=False)
    currency = Column(String(3), nullable=False, default=Currency.EUR.value)
    quantity = Column(Numeric(14, 2), nullable=False, default=Decimal("1"))
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    @property
    def planned_total(self) -> Decimal:
        return Decimal(self.unit_cost_original) * Decimal(self.quantity)


class FinanceTransaction(Base):
    """
    An actual cash movement. amount_original is always positive; the
    direction comes from transaction_type.
    """

    __tablename__ = "event_finance_transactions"

    id = Column(String(36), primary_key=True, default=new_id)
    transaction_type = Column(String(7), nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    party = Column(String, nullable=True)
    amount_original = Column(Money, nullable=False)
    currency = Column(String(3), nullable=False)
    payment_method = Column(String, nullable=False, default=PaymentMethod.OTHER.value)
    account = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    allocations = relationship(
        "TransactionAllocation",
        back_populates="transaction",
        cascade="all",
        passive_deletes=True,
        order_by="TransactionAllocation.created_at",
    )

    def allocation_total(self) -> Decimal:
        return Decimal(self.amount_original)


class TransactionAllocation(Base):
    __tablename__ = "event_finance_transaction_allocations"
    __table_args__ = (
        UniqueConstraint("transaction_id", "budget_item_id", name="event_finance_tx_alloc_unique"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    transaction_id = Column(
        String(36),
        ForeignKey("event_finance_transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    budget_item_id = Column(
        String(36),
        ForeignKey("event_finance_budget_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount_original = Column(Money, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    transaction = relationship("FinanceTransaction", back_populates="allocations")


class Sponsorship(Base):
    """
    A sponsor commitment. Allocations split the pledged amount, not the
    paid one; status is set by the caller and never inferred.
    """

    __tablename__ = "event_finance_sponsorships"

    id = Column(String(36), primary_key=True, default=new_id)
    sponsor_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    pledged_amount_original = Column(Money, nullable=False)
    paid_amount_original = Column(Money, nullable=False, default=Decimal("0"))
    currency = Column(String(3), nullable=False, default=Currency.EUR.value)
    status = Column(String, nullable=False, default=SponsorshipStatus.PLEDGED.value, index=True)
    expected_date = Column(Date, nullable=True)
    received_date = Column(Date, nullable=True)
    payment_method = Column(String, nullable=False, default=PaymentMethod.OTHER.value)
    account = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    allocations = relationship(
        "SponsorshipAllocation",
        back_populates="sponsorship",
        cascade="all",
        passive_deletes=True,
        order_by="SponsorshipAllocation.created_at",
    )

    def allocation_total(self) -> Decimal:
        return Decimal(self.pledged_amount_original)


class SponsorshipAllocation(Base):
    __tablename__ = "event_finance_sponsorship_allocations"
    __table_args__ = (
        UniqueConstraint("sponsorship_id", "budget_item_id", name="event_finance_sp_alloc_unique"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    sponsorship_id = Column(
        String(36),
        ForeignKey("event_finance_sponsorships.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    budget_item_id = Column(
        String(36),
        ForeignKey("event_finance_budget_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount_original = Column(Money, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    sponsorship = relationship("Sponsorship", back_populates="allocations")

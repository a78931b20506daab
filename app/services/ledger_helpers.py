# app/services/ledger_helpers.py
#
# Ledger Helper Functions
# Normalizes loosely-typed mutation payloads (JSON dicts coming from the
# back-office UI) into clean column values for the ORM models.

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Iterable, Optional, Type

from models import Currency, PaymentMethod, SponsorshipStatus, TransactionType
from app.services.ledger_errors import LedgerValidationError

CENT = Decimal("0.01")


# ---- Scalar normalization ----

def normalize_text(value: Any) -> Optional[str]:
    """Trimmed string, or None for non-strings and blanks."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_date(value: Any, field: str) -> Optional[date]:
    """
    Accepts a date object or a 'YYYY-MM-DD' string.
    Empty input -> None; anything else unparseable is a validation error.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = normalize_text(value)
    if text is None:
        return None
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        raise LedgerValidationError(f"{field} must be a date in YYYY-MM-DD format")


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Lenient number parsing: ints, floats, Decimals, and strings using
    either '.' or ',' as decimal separator. Returns None when not a number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not number.is_finite():
        return None
    return number


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_amount(
    value: Any,
    field: str,
    default: Optional[Decimal] = None,
    allow_zero: bool = True,
    exact_cents: bool = False,
) -> Decimal:
    """
    Parse a native-currency amount, rounded to cents.

    Missing values fall back to default (if given); negative amounts are
    always rejected, zero only when allow_zero is False. With exact_cents,
    values with more than 2 decimal places are rejected instead of rounded.
    """
    number = parse_decimal(value)
    if number is None:
        if (value is None or normalize_text(value) is None) and default is not None:
            return default
        raise LedgerValidationError(f"{field} must be a number")

    if exact_cents and number != to_cents(number):
        raise LedgerValidationError(f"{field} must have at most 2 decimal places")
    number = to_cents(number)
    if number < 0:
        raise LedgerValidationError(f"{field} cannot be negative")
    if not allow_zero and number == 0:
        raise LedgerValidationError(f"{field} must be greater than zero")
    return number


def normalize_choice(value: Any, choices: Type[Enum], field: str, default: Optional[Enum] = None) -> str:
    """
    Map a raw value onto an enum's string value.
    Missing -> default (or error without one); unknown -> error.
    """
    if isinstance(value, Enum):
        value = value.value
    text = normalize_text(value)
    if text is None:
        if default is None:
            raise LedgerValidationError(f"{field} is required")
        return default.value

    allowed = [member.value for member in choices]
    if text not in allowed:
        raise LedgerValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return text


def parse_accounts(raw: Any) -> list[str]:
    """
    Accounts come either as a list or as one string separated by newlines
    or commas. Trimmed, blanks dropped, first occurrence wins.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts: Iterable[Any] = raw.replace("\r\n", "\n").replace(",", "\n").split("\n")
    elif isinstance(raw, (list, tuple)):
        parts = raw
    else:
        raise LedgerValidationError("accounts must be a list or a newline separated string")

    unique: list[str] = []
    for part in parts:
        name = normalize_text(part)
        if name and name not in unique:
            unique.append(name)
    return unique


# ---- Payload -> column dicts ----

def build_budget_item_fields(data: dict, default_currency: str) -> dict:
    """
    Convert one budget-item payload into BudgetItem column values.
    Every field is replaced on update, so missing optional fields reset.
    """
    fields = {
        "category_name": normalize_text(data.get("category_name")),
        "macro_category": normalize_text(data.get("macro_category")),
        "unit_cost_original": normalize_amount(
            data.get("unit_cost_original"), "unit_cost_original", default=Decimal("0.00")
        ),
        "currency": normalize_choice(
            data.get("currency"), Currency, "currency", default=Currency(default_currency)
        ),
        "quantity": normalize_amount(
            data.get("quantity"),
            "quantity",
            default=Decimal("1.00"),
            allow_zero=False,
            exact_cents=True,
        ),
        "notes": normalize_text(data.get("notes")),
    }

    if not fields["category_name"] or not fields["macro_category"]:
        raise LedgerValidationError("category_name and macro_category are required")
    return fields


def build_transaction_fields(data: dict, default_currency: str) -> dict:
    """
    Convert one transaction payload into FinanceTransaction column values.
    """
    fields = {
        "transaction_type": normalize_choice(
            data.get("transaction_type"), TransactionType, "transaction_type"
        ),
        "transaction_date": normalize_date(data.get("transaction_date"), "transaction_date"),
        "description": normalize_text(data.get("description")),
        "party": normalize_text(data.get("party")),
        "amount_original": normalize_amount(
            data.get("amount_original"), "amount_original", allow_zero=False
        ),
        "currency": normalize_choice(
            data.get("currency"), Currency, "currency", default=Currency(default_currency)
        ),
        "payment_method": normalize_choice(
            data.get("payment_method"), PaymentMethod, "payment_method", default=PaymentMethod.OTHER
        ),
        "account": normalize_text(data.get("account")),
        "notes": normalize_text(data.get("notes")),
    }

    if not fields["transaction_date"] or not fields["description"]:
        raise LedgerValidationError("transaction_type, transaction_date and description are required")
    return fields


def build_sponsorship_fields(data: dict, default_currency: str) -> dict:
    """
    Convert one sponsorship payload into Sponsorship column values.
    Status is taken as given; it is never derived from the amounts.
    """
    fields = {
        "sponsor_name": normalize_text(data.get("sponsor_name")),
        "description": normalize_text(data.get("description")),
        "pledged_amount_original": normalize_amount(
            data.get("pledged_amount_original"), "pledged_amount_original", default=Decimal("0.00")
        ),
        "paid_amount_original": normalize_amount(
            data.get("paid_amount_original"), "paid_amount_original", default=Decimal("0.00")
        ),
        "currency": normalize_choice(
            data.get("currency"), Currency, "currency", default=Currency(default_currency)
        ),
        "status": normalize_choice(
            data.get("status"), SponsorshipStatus, "status", default=SponsorshipStatus.PLEDGED
        ),
        "expected_date": normalize_date(data.get("expected_date"), "expected_date"),
        "received_date": normalize_date(data.get("received_date"), "received_date"),
        "payment_method": normalize_choice(
            data.get("payment_method"), PaymentMethod, "payment_method", default=PaymentMethod.OTHER
        ),
        "account": normalize_text(data.get("account")),
        "notes": normalize_text(data.get("notes")),
    }

    if not fields["sponsor_name"]:
        raise LedgerValidationError("sponsor_name is required")
    return fields

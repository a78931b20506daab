# app/services/currency.py
"""
Currency conversion into the reporting currency.

The ledger knows exactly two currencies (EUR, HUF). The settings record
names the reporting one; the exchange rate is always expressed as
"secondary units per one reporting unit" (1 EUR = 400 HUF -> 400).

Amounts are stored natively and converted only at read time, with the
current rate. Sums keep full Decimal precision; round_money() is for the
output boundary only.
"""

from decimal import Decimal, ROUND_HALF_UP

from models import Currency
from app.services.ledger_errors import LedgerValidationError

CENT = Decimal("0.01")


def secondary_currency(reporting_currency: str) -> str:
    """The member of the currency pair that is not the reporting one."""
    if reporting_currency == Currency.EUR.value:
        return Currency.HUF.value
    return Currency.EUR.value


def _check_rate(rate: Decimal) -> Decimal:
    rate = Decimal(rate)
    if rate <= 0:
        raise LedgerValidationError("exchange_rate must be greater than zero")
    return rate


def to_reporting_currency(
    amount: Decimal,
    currency: str,
    rate: Decimal,
    reporting_currency: str,
) -> Decimal:
    """
    Convert a native amount into the reporting currency.

    Same currency -> unchanged. Secondary currency -> amount / rate.
    """
    amount = Decimal(amount)
    if currency == reporting_currency:
        return amount
    return amount / _check_rate(rate)


def from_reporting_currency(
    amount: Decimal,
    currency: str,
    rate: Decimal,
    reporting_currency: str,
) -> Decimal:
    """Inverse of to_reporting_currency: express a reporting amount in `currency`."""
    amount = Decimal(amount)
    if currency == reporting_currency:
        return amount
    return amount * _check_rate(rate)


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    rate: Decimal,
    reporting_currency: str,
) -> Decimal:
    if from_currency == to_currency:
        return Decimal(amount)
    in_reporting = to_reporting_currency(amount, from_currency, rate, reporting_currency)
    return from_reporting_currency(in_reporting, to_currency, rate, reporting_currency)


def round_money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)

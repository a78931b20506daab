from decimal import Decimal

import pytest

from app.services.currency import (
    convert,
    from_reporting_currency,
    round_money,
    secondary_currency,
    to_reporting_currency,
)
from app.services.ledger_errors import LedgerValidationError


def test_secondary_currency_is_the_other_member_of_the_pair():
    assert secondary_currency("EUR") == "HUF"
    assert secondary_currency("HUF") == "EUR"


def test_reporting_currency_amount_is_unchanged():
    assert to_reporting_currency(Decimal("123.45"), "EUR", Decimal("400"), "EUR") == Decimal("123.45")


def test_secondary_amount_is_divided_by_rate():
    assert to_reporting_currency(Decimal("4000"), "HUF", Decimal("400"), "EUR") == Decimal("10")


def test_huf_reporting_divides_eur_amounts_by_rate():
    # Rate is always secondary units per reporting unit: 1 HUF = 0.0025 EUR.
    result = to_reporting_currency(Decimal("1"), "EUR", Decimal("0.0025"), "HUF")
    assert result == Decimal("400")


def test_from_reporting_is_inverse():
    assert from_reporting_currency(Decimal("10"), "HUF", Decimal("400"), "EUR") == Decimal("4000")
    assert from_reporting_currency(Decimal("10"), "EUR", Decimal("400"), "EUR") == Decimal("10")


def test_convert_between_native_currencies():
    assert convert(Decimal("50"), "EUR", "HUF", Decimal("400"), "EUR") == Decimal("20000")
    assert convert(Decimal("20000"), "HUF", "EUR", Decimal("400"), "EUR") == Decimal("50")
    assert convert(Decimal("7"), "HUF", "HUF", Decimal("0"), "EUR") == Decimal("7")


@pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-1")])
def test_non_positive_rate_is_rejected(rate):
    with pytest.raises(LedgerValidationError):
        to_reporting_currency(Decimal("100"), "HUF", rate, "EUR")


def test_round_money_is_half_up_to_cents():
    assert round_money(Decimal("2.345")) == Decimal("2.35")
    assert round_money(Decimal("2.344")) == Decimal("2.34")
    assert round_money(Decimal("10") / Decimal("3")) == Decimal("3.33")

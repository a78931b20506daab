from decimal import Decimal

import pytest

from models import BudgetItem, SponsorshipAllocation, TransactionAllocation
from app.services.budget_items import (
    delete_budget_item,
    list_macro_categories,
    update_budget_item,
)
from app.services.ledger_errors import LedgerNotFoundError, LedgerValidationError
from app.services.reporting import build_finance_report, load_finance_dataset
from app.services.sponsorships import save_sponsorship
from app.services.transactions import save_transaction
from conftest import alloc, sponsorship_payload, tx_payload


def test_create_defaults_currency_and_quantity(make_item):
    item = make_item("Venue", currency=None, quantity=None, unit_cost_original="250")

    assert item.id
    assert item.currency == "EUR"
    assert item.quantity == Decimal("1.00")
    assert item.planned_total == Decimal("250")


def test_planned_total_is_unit_cost_times_quantity(make_item):
    item = make_item("Badges", unit_cost_original="2.50", quantity="120")
    assert item.planned_total == Decimal("300")


@pytest.mark.parametrize(
    "overrides",
    [
        {"category_name": "  "},
        {"macro_category": None},
        {"unit_cost_original": "-1"},
        {"quantity": "0"},
        {"quantity": "0.004"},
        {"quantity": "1.005"},
        {"currency": "USD"},
    ],
)
def test_invalid_budget_item_is_rejected(db, make_item, overrides):
    with pytest.raises(LedgerValidationError):
        make_item("Venue", **overrides)
    assert db.query(BudgetItem).count() == 0


def test_update_replaces_every_field(db, make_item):
    item = make_item("Venue", notes="deposit due in May")

    updated = update_budget_item(
        db,
        item.id,
        {
            "category_name": "Main hall",
            "macro_category": "Venue",
            "unit_cost_original": "1200",
            "currency": "HUF",
            "quantity": "2",
        },
    )

    assert updated.category_name == "Main hall"
    assert updated.currency == "HUF"
    assert updated.planned_total == Decimal("2400")
    assert updated.notes is None


def test_update_unknown_item_is_not_found(db):
    with pytest.raises(LedgerNotFoundError):
        update_budget_item(db, "missing", {"category_name": "x", "macro_category": "y"})


def test_delete_removes_allocations_of_both_kinds(db, make_item):
    venue = make_item("Venue")
    catering = make_item("Catering")
    tx = save_transaction(
        db,
        tx_payload(amount_original="150"),
        [alloc(venue, 100), alloc(catering, 50)],
    )
    save_sponsorship(db, sponsorship_payload(pledged_amount_original="80"), [alloc(venue, 80)])

    delete_budget_item(db, venue.id)

    assert db.get(BudgetItem, venue.id) is None
    remaining = db.query(TransactionAllocation).all()
    assert [a.budget_item_id for a in remaining] == [catering.id]
    assert remaining[0].transaction_id == tx.id
    assert db.query(SponsorshipAllocation).count() == 0

    report = build_finance_report(load_finance_dataset(db))
    assert [line.budget_item_id for line in report.lines] == [catering.id]
    assert report.overview.expenses == Decimal("50")
    assert report.overview.sponsored == Decimal("0")
    assert report.overview.planned == Decimal("1000")


def test_delete_unknown_item_is_not_found(db):
    with pytest.raises(LedgerNotFoundError):
        delete_budget_item(db, "missing")


def test_macro_categories_are_distinct_and_sorted(db, make_item):
    make_item("Venue", macro_category="Logistics")
    make_item("Flights", macro_category="Travel")
    make_item("Catering", macro_category="Logistics")

    assert list_macro_categories(db) == ["Logistics", "Travel"]


def test_quantity_with_sub_cent_precision_is_not_rounded(make_item):
    with pytest.raises(LedgerValidationError) as excinfo:
        make_item("Badges", quantity="1.005")
    assert excinfo.value.message == "quantity must have at most 2 decimal places"


def test_quantity_with_trailing_zeros_is_accepted(make_item):
    item = make_item("Badges", unit_cost_original="2", quantity="1.500")
    assert item.quantity == Decimal("1.50")
    assert item.planned_total == Decimal("3")

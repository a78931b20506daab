from decimal import Decimal

import pytest

from app.services.allocations import (
    AllocationInput,
    parse_allocations,
    validate_allocations,
    validate_for_parent,
)
from app.services.ledger_errors import LedgerValidationError


class _Parent:
    def __init__(self, total):
        self.total = Decimal(total)

    def allocation_total(self):
        return self.total


def test_split_within_tolerance_is_accepted():
    rows = parse_allocations(
        [
            {"budget_item_id": "venue", "amount_original": "100.00"},
            {"budget_item_id": "catering", "amount_original": "50.00"},
        ]
    )
    validate_allocations(rows, Decimal("150.00"))


def test_mismatched_split_reports_both_totals():
    rows = parse_allocations(
        [
            {"budget_item_id": "venue", "amount_original": "100.00"},
            {"budget_item_id": "catering", "amount_original": "40.00"},
        ]
    )
    with pytest.raises(LedgerValidationError) as excinfo:
        validate_allocations(rows, Decimal("150.00"))
    assert excinfo.value.message == "Allocations total (140.00) must match amount (150.00)"


def test_one_cent_gap_is_rejected():
    rows = parse_allocations(
        [
            {"budget_item_id": "venue", "amount_original": "90.00"},
            {"budget_item_id": "catering", "amount_original": "59.99"},
        ]
    )
    with pytest.raises(LedgerValidationError) as excinfo:
        validate_allocations(rows, Decimal("150.00"))
    assert excinfo.value.message == "Allocations total (149.99) must match amount (150.00)"


def test_exact_split_is_accepted():
    rows = parse_allocations(
        [
            {"budget_item_id": "venue", "amount_original": "90.00"},
            {"budget_item_id": "catering", "amount_original": "60.00"},
        ]
    )
    validate_allocations(rows, Decimal("150.00"))


def test_sub_cent_noise_is_tolerated():
    validate_allocations([AllocationInput("venue", Decimal("149.995"))], Decimal("150.00"))


def test_empty_allocations_mean_unallocated():
    validate_allocations([], Decimal("150.00"))

    with pytest.raises(LedgerValidationError):
        validate_allocations([], Decimal("150.00"), allow_empty=False)


def test_malformed_rows_are_dropped():
    rows = parse_allocations(
        [
            "not a row",
            {"budget_item_id": "", "amount_original": "10"},
            {"budget_item_id": "venue", "amount_original": "abc"},
            {"budget_item_id": "venue", "amount_original": "0"},
            {"budget_item_id": "venue", "amount_original": "-5"},
            {"budget_item_id": "catering", "amount_original": "12,5"},
        ]
    )
    assert rows == [AllocationInput("catering", Decimal("12.50"))]


def test_unknown_budget_items_are_dropped():
    rows = parse_allocations(
        [
            {"budget_item_id": "venue", "amount_original": 10},
            {"budget_item_id": "ghost", "amount_original": 10},
        ],
        known_budget_item_ids={"venue"},
    )
    assert [r.budget_item_id for r in rows] == ["venue"]


def test_duplicate_budget_items_are_merged():
    rows = parse_allocations(
        [
            {"budget_item_id": "venue", "amount_original": "30"},
            {"budget_item_id": "catering", "amount_original": "20"},
            {"budget_item_id": "venue", "amount_original": "50"},
        ]
    )
    assert rows == [
        AllocationInput("venue", Decimal("80.00")),
        AllocationInput("catering", Decimal("20.00")),
    ]


def test_non_list_payload_yields_nothing():
    assert parse_allocations(None) == []
    assert parse_allocations({"budget_item_id": "venue"}) == []


def test_parent_without_allocations_passes():
    assert validate_for_parent(_Parent("150"), None, {"venue"}) == []
    assert validate_for_parent(_Parent("150"), [], {"venue"}) == []


def test_parent_with_only_garbage_rows_is_rejected():
    with pytest.raises(LedgerValidationError) as excinfo:
        validate_for_parent(
            _Parent("150"),
            [{"budget_item_id": "ghost", "amount_original": "150"}],
            {"venue"},
        )
    assert "(0.00)" in excinfo.value.message

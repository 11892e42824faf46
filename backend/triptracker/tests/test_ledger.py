"""
Tests for expense aggregation.
"""
from datetime import date
from decimal import Decimal

import pytest

from triptracker.core.errors import InvalidEnumValueError, UnknownCurrencyError
from triptracker.models.expense import Expense, ExpenseCategory, ExpenseStatus
from triptracker.services.currency_service import CurrencyConverter
from triptracker.services.ledger_service import (
    ExpenseLedger, filter_by_categories, filter_by_date_range, filter_by_reimbursement
)


def expense(amount, currency="USD", category=ExpenseCategory.OTHER, day=1, status=None, **kwargs):
    return Expense(
        amount=Decimal(amount),
        currency=currency,
        category=category,
        day_number=day,
        expense_date=date(2026, 6, day),
        description="test",
        status=status,
        **kwargs
    )


@pytest.fixture
def ledger(converter):
    return ExpenseLedger(converter)


def test_total_converts_before_summing(ledger):
    """100 EUR + 100 USD is not 200 USD."""
    total = ledger.total_in_currency([expense("100", "EUR"), expense("100", "USD")], "USD")
    assert total.amount == Decimal("217.65")
    assert total.counted == 2
    assert not total.is_partial


def test_total_of_nothing_is_zero(ledger):
    total = ledger.total_in_currency([], "EUR")
    assert total.amount == Decimal("0.00")
    assert total.currency == "EUR"


def test_unknown_currency_is_reported_not_dropped(converter):
    """Expenses that cannot be converted are skipped with a warning."""
    ledger = ExpenseLedger(CurrencyConverter({"USD": "1", "EUR": "0.85"}))
    total = ledger.total_in_currency([expense("50", "USD"), expense("20", "GBP")], "USD")
    assert total.amount == Decimal("50.00")
    assert total.is_partial
    assert len(total.skipped) == 1
    assert total.skipped[0].currency == "GBP"
    assert "GBP" in total.warnings[0]


def test_unknown_target_currency_fails(ledger):
    with pytest.raises(UnknownCurrencyError):
        ledger.total_in_currency([expense("1")], "XYZ")


def test_cancelled_and_refunded_do_not_count(ledger):
    expenses = [
        expense("10", status=ExpenseStatus.PAID),
        expense("20", status=ExpenseStatus.PENDING),
        expense("40", status=ExpenseStatus.CANCELLED),
        expense("80", status=ExpenseStatus.REFUNDED),
    ]
    assert ledger.total_in_currency(expenses, "USD").amount == Decimal("30.00")


def test_total_by_category(ledger):
    expenses = [
        expense("30", category=ExpenseCategory.FOOD),
        expense("100", "EUR", category=ExpenseCategory.FOOD),
        expense("200", category=ExpenseCategory.ACCOMMODATION),
    ]
    breakdown = ledger.total_by_category(expenses, "USD")
    assert breakdown.totals[ExpenseCategory.FOOD] == Decimal("147.65")
    assert breakdown.totals[ExpenseCategory.ACCOMMODATION] == Decimal("200.00")
    assert breakdown.counts[ExpenseCategory.FOOD] == 2
    assert breakdown.total == Decimal("347.65")


def test_total_by_day_is_sorted(ledger):
    expenses = [expense("5", day=3), expense("10", day=1), expense("15", day=3)]
    breakdown = ledger.total_by_day(expenses, "USD")
    assert list(breakdown.totals) == [1, 3]
    assert breakdown.totals[3] == Decimal("20.00")


def test_total_by_currency_keeps_raw_amounts(ledger):
    totals = ledger.total_by_currency([expense("100", "EUR"), expense("5", "USD"), expense("1", "EUR")])
    assert totals == {"EUR": Decimal("101.00"), "USD": Decimal("5.00")}


@pytest.mark.parametrize("amounts", [
    ["10.00", "20.00", "30.00"],
    ["0.01", "0.02", "99.99"],
    ["1234.56", "7.89"],
])
def test_sum_then_convert_matches_convert_then_sum(ledger, converter, amounts):
    """For a single source currency the order of sum and conversion does not matter beyond rounding."""
    expenses = [expense(a, "EUR") for a in amounts]
    summed = ledger.total_in_currency(expenses, "EUR").amount
    sum_then_convert = converter.convert(summed, "EUR", "JPY")
    convert_then_sum = ledger.total_in_currency(expenses, "JPY").amount
    # Each item is rounded to the cent on its own
    assert abs(sum_then_convert - convert_then_sum) <= Decimal("0.01") * len(amounts)


def test_mixed_currencies_are_not_interchangeable(ledger):
    """Raw sums across currencies differ from the converted total."""
    expenses = [expense("100", "EUR"), expense("100", "USD")]
    raw = sum(ledger.total_by_currency(expenses).values())
    assert raw == Decimal("200.00")
    assert ledger.total_in_currency(expenses, "USD").amount != raw


def test_filter_by_amount_in_own_currency(ledger):
    expenses = [expense("5"), expense("50"), expense("500")]
    result = ledger.filter_by_amount(expenses, min_amount="10", max_amount="100")
    assert [e.amount for e in result] == [Decimal("50")]


def test_filter_by_amount_converted(ledger):
    """100 EUR is 117.65 USD, so it passes a 110 USD minimum."""
    expenses = [expense("100", "EUR"), expense("100", "USD")]
    result = ledger.filter_by_amount(expenses, min_amount="110", currency="USD")
    assert [e.currency for e in result] == ["EUR"]


def test_filter_by_date_range():
    expenses = [expense("1", day=1), expense("2", day=2), expense("3", day=4)]
    result = filter_by_date_range(expenses, start=date(2026, 6, 2))
    assert [e.day_number for e in result] == [2, 4]
    result = filter_by_date_range(expenses, start=date(2026, 6, 1), end=date(2026, 6, 2))
    assert [e.day_number for e in result] == [1, 2]


def test_filter_by_categories():
    expenses = [
        expense("1", category=ExpenseCategory.FOOD),
        expense("2", category=ExpenseCategory.TIPS),
        expense("3", category=ExpenseCategory.VISAS),
    ]
    result = filter_by_categories(expenses, ["food", "Tips"])
    assert [e.category for e in result] == [ExpenseCategory.FOOD, ExpenseCategory.TIPS]


def test_filter_by_unknown_category():
    with pytest.raises(InvalidEnumValueError):
        filter_by_categories([expense("1")], ["Souvenirs"])


def test_filter_by_reimbursement():
    expenses = [
        expense("1", reimbursable=True, reimbursed=False),
        expense("2", reimbursable=True, reimbursed=True),
        expense("3", reimbursable=False, reimbursed=False),
    ]
    assert len(filter_by_reimbursement(expenses, reimbursable=True)) == 2
    outstanding = filter_by_reimbursement(expenses, reimbursable=True, reimbursed=False)
    assert [e.amount for e in outstanding] == [Decimal("1")]

"""
Expense ledger: read-only aggregation over a trip's expenses.

Amounts are always converted into the target currency before they are
summed. Expenses whose currency cannot be converted are left out of the
total and reported in ``skipped`` so callers can still show a best-effort
figure.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Hashable, Iterable, List, Optional
import logging

from triptracker.core.errors import UnknownCurrencyError
from triptracker.core.utils import parse_enum, quantize_amount, to_decimal
from triptracker.models.expense import Expense, ExpenseCategory
from triptracker.services.currency_service import CurrencyConverter

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class SkippedExpense:
    """Expense left out of a total and why."""
    expense_id: Optional[int]
    currency: str
    amount: Decimal
    reason: str


@dataclass
class LedgerTotal:
    """Sum of expenses in one currency plus anything that could not be converted."""
    amount: Decimal
    currency: str
    counted: int = 0
    skipped: List[SkippedExpense] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.skipped)

    @property
    def warnings(self) -> List[str]:
        return [
            f"Expense {s.expense_id} ({s.amount} {s.currency}) excluded: {s.reason}"
            for s in self.skipped
        ]


@dataclass
class LedgerBreakdown:
    """Totals grouped by a key (category, day number, ...) in one currency."""
    currency: str
    totals: Dict[Hashable, Decimal] = field(default_factory=dict)
    counts: Dict[Hashable, int] = field(default_factory=dict)
    skipped: List[SkippedExpense] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return quantize_amount(sum(self.totals.values(), ZERO))

    @property
    def warnings(self) -> List[str]:
        return [
            f"Expense {s.expense_id} ({s.amount} {s.currency}) excluded: {s.reason}"
            for s in self.skipped
        ]


class ExpenseLedger:
    """
    Aggregate queries over a collection of expenses.

    Only expenses that count as spending (Pending or Paid) contribute to
    totals; cancelled and refunded ones are ignored.
    """

    def __init__(self, converter: CurrencyConverter):
        self.converter = converter

    def _group(self, expenses: Iterable[Expense], target_currency: str,
               key: Callable[[Expense], Hashable]) -> LedgerBreakdown:
        breakdown = LedgerBreakdown(currency=target_currency)
        for expense in expenses:
            if not expense.counts_as_spending:
                continue
            try:
                converted = self.converter.convert(expense.amount, expense.currency, target_currency)
            except UnknownCurrencyError as e:
                logger.warning(f"Skipping expense {expense.id} in total: {e.message}")
                breakdown.skipped.append(SkippedExpense(
                    expense_id=expense.id,
                    currency=expense.currency,
                    amount=to_decimal(expense.amount),
                    reason=e.message
                ))
                continue
            k = key(expense)
            breakdown.totals[k] = breakdown.totals.get(k, ZERO) + converted
            breakdown.counts[k] = breakdown.counts.get(k, 0) + 1
        breakdown.totals = {k: quantize_amount(v) for k, v in breakdown.totals.items()}
        return breakdown

    def total_in_currency(self, expenses: Iterable[Expense], target_currency: str) -> LedgerTotal:
        """Convert every expense into target_currency and sum."""
        target_currency = self.converter.require_currency(target_currency)
        breakdown = self._group(expenses, target_currency, key=lambda e: target_currency)
        return LedgerTotal(
            amount=breakdown.totals.get(target_currency, ZERO),
            currency=target_currency,
            counted=breakdown.counts.get(target_currency, 0),
            skipped=breakdown.skipped,
        )

    def total_by_category(self, expenses: Iterable[Expense], target_currency: str) -> LedgerBreakdown:
        target_currency = self.converter.require_currency(target_currency)
        return self._group(expenses, target_currency, key=lambda e: e.category or ExpenseCategory.OTHER)

    def total_by_day(self, expenses: Iterable[Expense], target_currency: str) -> LedgerBreakdown:
        target_currency = self.converter.require_currency(target_currency)
        breakdown = self._group(expenses, target_currency, key=lambda e: e.day_number)
        breakdown.totals = dict(sorted(breakdown.totals.items()))
        return breakdown

    def total_by_currency(self, expenses: Iterable[Expense]) -> Dict[str, Decimal]:
        """Raw sums per original currency; nothing is added across currencies."""
        totals: Dict[str, Decimal] = {}
        for expense in expenses:
            if expense.counts_as_spending:
                totals[expense.currency] = totals.get(expense.currency, ZERO) + to_decimal(expense.amount)
        return {code: quantize_amount(amount) for code, amount in sorted(totals.items())}

    def filter_by_amount(self, expenses: Iterable[Expense], min_amount=None, max_amount=None,
                         currency: str = None) -> List[Expense]:
        """
        Keep expenses with min_amount <= amount <= max_amount.
        With a currency, amounts are converted before comparing and
        expenses that cannot be converted are dropped from the result.
        """
        if currency is not None:
            currency = self.converter.require_currency(currency)
        low = to_decimal(min_amount) if min_amount is not None else None
        high = to_decimal(max_amount) if max_amount is not None else None

        result = []
        for expense in expenses:
            amount = to_decimal(expense.amount)
            if currency is not None:
                try:
                    amount = self.converter.convert(amount, expense.currency, currency)
                except UnknownCurrencyError:
                    continue
            if low is not None and amount < low:
                continue
            if high is not None and amount > high:
                continue
            result.append(expense)
        return result


def filter_by_date_range(expenses: Iterable[Expense], start: date = None, end: date = None) -> List[Expense]:
    """Expenses dated within [start, end]; open ends are unbounded."""
    return [
        e for e in expenses
        if (start is None or e.expense_date >= start) and (end is None or e.expense_date <= end)
    ]


def filter_by_categories(expenses: Iterable[Expense], categories: Iterable) -> List[Expense]:
    wanted = {parse_enum(ExpenseCategory, c) for c in categories}
    return [e for e in expenses if (e.category or ExpenseCategory.OTHER) in wanted]


def filter_by_reimbursement(expenses: Iterable[Expense], reimbursable: bool = None,
                            reimbursed: bool = None) -> List[Expense]:
    return [
        e for e in expenses
        if (reimbursable is None or bool(e.reimbursable) == reimbursable)
        and (reimbursed is None or bool(e.reimbursed) == reimbursed)
    ]

"""
Budget monitor: turns ledger totals into budget alerts.

Each monitored alert type has a scope (type, category, day). For every
scope the monitor decides whether its condition currently holds:

- holds and no open alert for the scope -> create an Active alert
- holds and an open alert exists -> refresh the amount snapshots
  (dismissed alerts stay dismissed and suppress re-creation)
- does not hold -> resolve Active/Acknowledged alerts and mark every open
  alert of the scope as cleared, so the next trigger creates a new one

The monitor only mutates the trip's alert collection; committing is left to
the caller's transaction.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime
import logging

from triptracker.core.config import settings
from triptracker.core.errors import ValidationError
from triptracker.core.utils import parse_enum, to_decimal, utcnow
from triptracker.models.budget_alert import (
    AlertStatus, AlertType, BudgetAlert, render_alert_message, usage_percentage
)
from triptracker.models.expense import ExpenseCategory
from triptracker.models.trip import Trip
from triptracker.services.ledger_service import ExpenseLedger

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

MONITORED_TYPES = frozenset({
    AlertType.BUDGET_WARNING,
    AlertType.BUDGET_EXCEEDED,
    AlertType.DAILY_SPENDING_LIMIT,
    AlertType.CATEGORY_LIMIT,
})

Scope = Tuple[AlertType, Optional[str], Optional[int]]


@dataclass
class _Condition:
    current: Decimal
    limit: Decimal
    threshold: Decimal


@dataclass
class BudgetEvaluation:
    """Outcome of one budget evaluation for a trip."""
    trip_id: Optional[int]
    currency: str
    budget: Optional[Decimal]
    total_spent: Decimal
    usage_percentage: Decimal
    threshold_percentage: Decimal
    is_over_budget: bool
    created: List[BudgetAlert] = field(default_factory=list)
    updated: List[BudgetAlert] = field(default_factory=list)
    resolved: List[BudgetAlert] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.resolved)


def validate_threshold(value) -> Decimal:
    """Threshold percentages must lie within 0-100."""
    threshold = to_decimal(value)
    if threshold < 0 or threshold > HUNDRED:
        raise ValidationError(
            f"Threshold percentage must be between 0 and 100, got {threshold}",
            details={"threshold_percentage": str(threshold)},
        )
    return threshold


class BudgetMonitor:
    """
    Evaluates a trip's spending against its budget and alert limits.

    Args:
        ledger: Ledger used to total expenses in the trip currency
        threshold_percentage: Warning threshold when the trip sets none
        clock: Returns the current aware datetime
    """

    def __init__(self, ledger: ExpenseLedger, threshold_percentage=None,
                 clock: Callable[[], datetime] = utcnow):
        self.ledger = ledger
        self.default_threshold = validate_threshold(
            settings.BUDGET_WARNING_THRESHOLD if threshold_percentage is None else threshold_percentage
        )
        self.clock = clock

    def threshold_for(self, trip: Trip) -> Decimal:
        if trip.alert_threshold is None:
            return self.default_threshold
        return validate_threshold(trip.alert_threshold)

    def _conditions(self, trip: Trip, total: Decimal, threshold: Decimal,
                    warnings: List[str]) -> Dict[Scope, _Condition]:
        conditions: Dict[Scope, _Condition] = {}

        # No budget, no spending alerts
        if trip.budget is not None:
            budget = to_decimal(trip.budget)
            usage = usage_percentage(total, budget)
            if budget > 0 and usage >= threshold:
                conditions[(AlertType.BUDGET_WARNING, None, None)] = _Condition(total, budget, threshold)
            if total > budget:
                conditions[(AlertType.BUDGET_EXCEEDED, None, None)] = _Condition(total, budget, HUNDRED)

        if trip.daily_spending_limit is not None:
            limit = to_decimal(trip.daily_spending_limit)
            by_day = self.ledger.total_by_day(trip.expenses, trip.currency)
            warnings.extend(w for w in by_day.warnings if w not in warnings)
            for day, spent in by_day.totals.items():
                if limit > 0 and spent >= limit:
                    conditions[(AlertType.DAILY_SPENDING_LIMIT, None, day)] = _Condition(spent, limit, HUNDRED)

        if trip.category_limits:
            by_category = self.ledger.total_by_category(trip.expenses, trip.currency)
            warnings.extend(w for w in by_category.warnings if w not in warnings)
            for name, raw_limit in trip.category_limits.items():
                category = parse_enum(ExpenseCategory, name)
                limit = to_decimal(raw_limit)
                spent = by_category.totals.get(category, Decimal("0.00"))
                if limit > 0 and spent >= limit:
                    conditions[(AlertType.CATEGORY_LIMIT, category.value, None)] = _Condition(spent, limit, HUNDRED)

        return conditions

    def evaluate(self, trip: Trip) -> BudgetEvaluation:
        """Create, refresh and resolve alerts on trip.alerts to match current spending."""
        now = self.clock()
        threshold = self.threshold_for(trip)
        spending = self.ledger.total_in_currency(trip.expenses, trip.currency)
        total = spending.amount
        budget = to_decimal(trip.budget) if trip.budget is not None else None

        evaluation = BudgetEvaluation(
            trip_id=trip.id,
            currency=trip.currency,
            budget=budget,
            total_spent=total,
            usage_percentage=usage_percentage(total, budget),
            threshold_percentage=threshold,
            is_over_budget=budget is not None and total > budget,
            warnings=list(spending.warnings),
        )

        conditions = self._conditions(trip, total, threshold, evaluation.warnings)

        open_alerts: Dict[Scope, List[BudgetAlert]] = {}
        for alert in trip.alerts:
            if alert.alert_type in MONITORED_TYPES and alert.is_open:
                open_alerts.setdefault(alert.scope, []).append(alert)

        for scope, alerts in open_alerts.items():
            if scope in conditions:
                continue
            for alert in alerts:
                if alert.status in (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED):
                    alert.resolve(now, action_taken="Condition no longer holds")
                    evaluation.resolved.append(alert)
                    logger.info(f"Resolved {alert.alert_type.value} alert {alert.id} for trip {trip.id}")
                alert.clear(now)

        for scope, condition in conditions.items():
            alert_type, category, day_number = scope
            existing = open_alerts.get(scope)
            if existing:
                for alert in existing:
                    if alert.status not in (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED):
                        continue
                    if (alert.current_amount != condition.current
                            or alert.budget_amount != condition.limit):
                        alert.current_amount = condition.current
                        alert.budget_amount = condition.limit
                        alert.message = render_alert_message(
                            alert_type, condition.current, condition.limit, trip.currency,
                            category=category, day_number=day_number
                        )
                        evaluation.updated.append(alert)
                continue

            alert = BudgetAlert(
                alert_type=alert_type,
                threshold_percentage=condition.threshold,
                current_amount=condition.current,
                budget_amount=condition.limit,
                currency=trip.currency,
                category=category,
                day_number=day_number,
                status=AlertStatus.ACTIVE,
                triggered_at=now,
                message=render_alert_message(
                    alert_type, condition.current, condition.limit, trip.currency,
                    category=category, day_number=day_number
                ),
            )
            trip.alerts.append(alert)
            evaluation.created.append(alert)
            logger.info(
                f"Raised {alert_type.value} alert for trip {trip.id}: "
                f"{condition.current} of {condition.limit} {trip.currency}"
            )

        return evaluation

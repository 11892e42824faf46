"""
Budget alert model raised by the budget monitor.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import Column, String, Numeric, DateTime, Text, Enum as SQLEnum, ForeignKey, Integer
from triptracker.core.config import settings
from triptracker.db.base import BaseModel
from triptracker.models.transitions import check_transition
import enum


class AlertType(str, enum.Enum):
    """Budget alert type enumeration."""
    BUDGET_WARNING = "BudgetWarning"
    BUDGET_EXCEEDED = "BudgetExceeded"
    DAILY_SPENDING_LIMIT = "DailySpendingLimit"
    CATEGORY_LIMIT = "CategoryLimit"
    UNUSUAL_SPENDING = "UnusualSpending"
    BUDGET_MILESTONE = "BudgetMilestone"
    SAVINGS_GOAL = "SavingsGoal"


class AlertStatus(str, enum.Enum):
    """Budget alert status enumeration."""
    ACTIVE = "Active"
    ACKNOWLEDGED = "Acknowledged"
    RESOLVED = "Resolved"
    DISMISSED = "Dismissed"


ALERT_TRANSITIONS = {
    AlertStatus.ACTIVE: frozenset({AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.DISMISSED}),
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
    AlertStatus.DISMISSED: frozenset(),
}

ALERT_MESSAGES = {
    AlertType.BUDGET_WARNING: "Budget warning: used {usage:.1f}% of budget",
    AlertType.BUDGET_EXCEEDED: "Budget exceeded: spent {over:.2f} {currency} more than budget",
    AlertType.DAILY_SPENDING_LIMIT: "Daily spending limit reached on day {day}",
    AlertType.CATEGORY_LIMIT: "Category spending limit reached for {category}",
    AlertType.UNUSUAL_SPENDING: "Unusual spending pattern detected",
    AlertType.BUDGET_MILESTONE: "Budget milestone reached",
    AlertType.SAVINGS_GOAL: "Savings goal achieved",
}

HUNDRED = Decimal("100")


def usage_percentage(current: Decimal, budget: Decimal) -> Decimal:
    """current / budget * 100 rounded to 2 places; 0 when budget is 0 or unset."""
    if not budget:
        return Decimal("0.00")
    return (Decimal(current) / Decimal(budget) * HUNDRED).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class BudgetAlert(BaseModel):
    """Snapshot of a budget condition and its acknowledgement lifecycle."""
    __tablename__ = "budget_alerts"

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_type = Column(SQLEnum(AlertType), nullable=False)
    threshold_percentage = Column(Numeric(5, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), nullable=False)
    budget_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    message = Column(Text, nullable=True)
    status = Column(SQLEnum(AlertStatus), nullable=False, default=AlertStatus.ACTIVE)

    # Scope of per-category and per-day alerts
    category = Column(String(50), nullable=True)
    day_number = Column(Integer, nullable=True)

    triggered_at = Column(DateTime(timezone=True), nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    cleared_at = Column(DateTime(timezone=True), nullable=True)  # Triggering condition stopped holding
    action_taken = Column(String(255), nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def scope(self) -> tuple:
        return (self.alert_type, self.category, self.day_number)

    @property
    def usage_percentage(self) -> Decimal:
        return usage_percentage(self.current_amount, self.budget_amount)

    @property
    def remaining_budget(self) -> Decimal:
        return Decimal(self.budget_amount) - Decimal(self.current_amount)

    @property
    def is_over_budget(self) -> bool:
        return Decimal(self.current_amount) > Decimal(self.budget_amount)

    @property
    def is_near_threshold(self) -> bool:
        return self.usage_percentage >= Decimal(self.threshold_percentage)

    @property
    def is_urgent(self) -> bool:
        return (
            self.alert_type == AlertType.BUDGET_EXCEEDED
            or self.usage_percentage >= settings.URGENT_USAGE_PERCENTAGE
        )

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE

    @property
    def is_open(self) -> bool:
        """Still tied to an ongoing triggering condition."""
        return self.cleared_at is None

    @property
    def formatted_message(self) -> str:
        if self.message:
            return self.message
        return render_alert_message(
            self.alert_type, self.current_amount, self.budget_amount, self.currency,
            category=self.category, day_number=self.day_number
        )

    def acknowledge(self, at: datetime, action_taken: str = None) -> None:
        check_transition(ALERT_TRANSITIONS, "BudgetAlert", self.status, AlertStatus.ACKNOWLEDGED)
        self.status = AlertStatus.ACKNOWLEDGED
        self.acknowledged_at = at
        if action_taken:
            self.action_taken = action_taken

    def resolve(self, at: datetime, action_taken: str = None) -> None:
        check_transition(ALERT_TRANSITIONS, "BudgetAlert", self.status, AlertStatus.RESOLVED)
        self.status = AlertStatus.RESOLVED
        self.resolved_at = at
        if action_taken:
            self.action_taken = action_taken

    def dismiss(self) -> None:
        check_transition(ALERT_TRANSITIONS, "BudgetAlert", self.status, AlertStatus.DISMISSED)
        self.status = AlertStatus.DISMISSED

    def clear(self, at: datetime) -> None:
        """Record that the triggering condition no longer holds."""
        if self.cleared_at is None:
            self.cleared_at = at


def render_alert_message(alert_type: AlertType, current: Decimal, budget: Decimal, currency: str,
                         category: str = None, day_number: int = None) -> str:
    """Fill the message template for alert_type."""
    template = ALERT_MESSAGES.get(alert_type, "Budget alert triggered")
    return template.format(
        usage=usage_percentage(current, budget),
        over=Decimal(current) - Decimal(budget),
        currency=currency,
        category=category,
        day=day_number,
    )

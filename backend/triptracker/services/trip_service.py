"""
Trip aggregate: the entry point for every change to a trip's money and sharing.

Each mutating method checks the acting user's access first, validates its
input, then applies the change and any budget re-evaluation inside a single
transaction. Either everything is committed or nothing is.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional
import logging

from sqlalchemy.orm import Session

from triptracker.core.config import settings
from triptracker.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from triptracker.core.utils import parse_enum, quantize_amount, to_decimal, utcnow
from triptracker.db.locking import ensure_current, transaction
from triptracker.models.budget_alert import AlertStatus, BudgetAlert, usage_percentage
from triptracker.models.expense import Expense, ExpenseCategory, ExpenseStatus
from triptracker.models.trip import Trip, TripStatus, TripVisibility
from triptracker.models.trip_share import TripShare
from triptracker.models.user import User
from triptracker.schemas.budget import (
    BudgetAlertResponse, BudgetCategoryItem, BudgetDayItem, BudgetSummary
)
from triptracker.services.budget_monitor import BudgetEvaluation, BudgetMonitor, validate_threshold
from triptracker.services.currency_service import CurrencyConverter, get_converter
from triptracker.services.ledger_service import (
    ExpenseLedger, filter_by_categories, filter_by_date_range, filter_by_reimbursement
)
from triptracker.services.share_service import TripShareManager

logger = logging.getLogger(__name__)

UNSET = object()

EXPENSE_FIELDS = (
    "category", "description", "amount", "currency", "status", "vendor", "payment_method",
    "notes", "reimbursable", "reimbursed", "reimbursement_reference", "day_number", "expense_date",
)


def validate_money(value, field: str, allow_zero: bool = True) -> Decimal:
    """Non-negative (or positive) amount with at most 2 decimal places."""
    amount = to_decimal(value)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(
            f"{field} must be {'non-negative' if allow_zero else 'greater than 0'}, got {amount}",
            details={field: str(amount)},
        )
    if amount != quantize_amount(amount):
        raise ValidationError(f"{field} must have at most 2 decimal places", details={field: str(amount)})
    return amount


def validate_category_limits(limits: Optional[Dict]) -> Optional[Dict[str, str]]:
    """Normalize category limit keys; stored as strings in the JSON column."""
    if limits is None:
        return None
    normalized = {}
    for name, limit in limits.items():
        category = parse_enum(ExpenseCategory, name)
        normalized[category.value] = str(validate_money(limit, f"category_limits.{category.value}", allow_zero=False))
    return normalized


def create_trip(
    db: Session,
    owner_id: int,
    title: str,
    destination: str,
    start_date: date,
    end_date: date,
    budget=None,
    currency: str = None,
    visibility=TripVisibility.PRIVATE,
    alert_threshold=None,
    daily_spending_limit=None,
    category_limits: Dict = None,
    converter: CurrencyConverter = None,
) -> Trip:
    """Create a trip owned by owner_id."""
    converter = converter or get_converter()
    owner = db.get(User, owner_id)
    if not owner:
        raise NotFoundError(f"User {owner_id} not found")
    if not title or not title.strip():
        raise ValidationError("Trip title is required")
    if end_date < start_date:
        raise ValidationError("Trip end date must not be before its start date")

    trip = Trip(
        title=title.strip(),
        destination=destination.strip(),
        start_date=start_date,
        end_date=end_date,
        budget=validate_money(budget, "budget") if budget is not None else None,
        currency=converter.require_currency(currency or settings.DEFAULT_CURRENCY),
        status=TripStatus.PLANNING,
        visibility=parse_enum(TripVisibility, visibility),
        owner_id=owner_id,
        alert_threshold=validate_threshold(alert_threshold) if alert_threshold is not None else None,
        daily_spending_limit=(
            validate_money(daily_spending_limit, "daily_spending_limit", allow_zero=False)
            if daily_spending_limit is not None else None
        ),
        category_limits=validate_category_limits(category_limits),
    )
    with transaction(db):
        db.add(trip)
    db.refresh(trip)
    logger.info(f"Created trip {trip.id} for user {owner_id}")
    return trip


class TripAggregate:
    """
    Trip-scoped facade over the ledger, budget monitor and share manager.

    Args:
        db: Session the trip was loaded from
        trip: The trip being operated on
        converter: Currency converter; built from settings when omitted
        clock: Returns the current aware datetime
    """

    def __init__(self, db: Session, trip: Trip, converter: CurrencyConverter = None,
                 clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.trip = trip
        self.clock = clock
        self.converter = converter or get_converter()
        self.ledger = ExpenseLedger(self.converter)
        self.monitor = BudgetMonitor(self.ledger, clock=clock)
        self.shares = TripShareManager(clock=clock)
        self.last_evaluation: Optional[BudgetEvaluation] = None

    @classmethod
    def load(cls, db: Session, trip_id: int, **kwargs) -> "TripAggregate":
        trip = db.query(Trip).filter(Trip.id == trip_id).first()
        if not trip:
            raise NotFoundError(f"Trip {trip_id} not found")
        return cls(db, trip, **kwargs)

    @classmethod
    def load_by_share_token(cls, db: Session, token: str, **kwargs) -> "TripAggregate":
        share = TripShareManager().find_by_token(db, token)
        return cls.load(db, share.trip_id, **kwargs)

    # Access

    def can_view(self, user_id: int) -> bool:
        return self.shares.can_view(self.trip, user_id)

    def can_edit(self, user_id: int) -> bool:
        return self.shares.can_edit(self.trip, user_id)

    def can_admin(self, user_id: int) -> bool:
        return self.shares.can_admin(self.trip, user_id)

    def require_view(self, user_id: int) -> None:
        if not self.can_view(user_id):
            raise PermissionDeniedError(f"User {user_id} cannot view trip {self.trip.id}")

    def require_edit(self, user_id: int) -> None:
        if not self.can_edit(user_id):
            raise PermissionDeniedError(f"User {user_id} cannot edit trip {self.trip.id}")

    def require_admin(self, user_id: int) -> None:
        if not self.can_admin(user_id):
            raise PermissionDeniedError(f"User {user_id} cannot manage sharing for trip {self.trip.id}")

    def require_owner(self, user_id: int) -> None:
        if not self.trip.is_owner(user_id):
            raise PermissionDeniedError(f"Only the owner can do this on trip {self.trip.id}")

    # Lookups

    def get_expense(self, expense_id: int) -> Expense:
        for expense in self.trip.expenses:
            if expense.id == expense_id:
                return expense
        raise NotFoundError(f"Expense {expense_id} not found on trip {self.trip.id}")

    def get_share(self, share_id: int) -> TripShare:
        for share in self.trip.shares:
            if share.id == share_id:
                return share
        raise NotFoundError(f"Share {share_id} not found on trip {self.trip.id}")

    def get_alert(self, alert_id: int) -> BudgetAlert:
        for alert in self.trip.alerts:
            if alert.id == alert_id:
                return alert
        raise NotFoundError(f"Alert {alert_id} not found on trip {self.trip.id}")

    # Internals

    def _touch(self) -> None:
        """Bump the trip row so concurrent amount changes on the same trip conflict."""
        self.trip.updated_at = self.clock()

    def _reevaluate(self) -> BudgetEvaluation:
        self._touch()
        self.last_evaluation = self.monitor.evaluate(self.trip)
        return self.last_evaluation

    def _resolve_day(self, day_number: Optional[int], expense_date: Optional[date]):
        """Fill in whichever of day number and date is missing and check they agree."""
        if day_number is None and expense_date is None:
            raise ValidationError("An expense needs a day number or a date")
        if expense_date is not None:
            derived = self.trip.day_number_for(expense_date)
            if day_number is not None and day_number != derived:
                raise ValidationError(
                    f"Day {day_number} does not match date {expense_date.isoformat()} (day {derived})"
                )
            day_number = derived
        if day_number < 1 or day_number > self.trip.duration_days:
            raise ValidationError(
                f"Day number must be between 1 and {self.trip.duration_days}, got {day_number}",
                details={"day_number": day_number},
            )
        return day_number, expense_date or self.trip.date_for_day(day_number)

    def _clean_expense_fields(self, fields: Dict) -> Dict:
        cleaned = dict(fields)
        if "amount" in cleaned:
            cleaned["amount"] = validate_money(cleaned["amount"], "amount", allow_zero=False)
        if "currency" in cleaned:
            cleaned["currency"] = self.converter.require_currency(cleaned["currency"])
        if "category" in cleaned:
            cleaned["category"] = parse_enum(ExpenseCategory, cleaned["category"])
        if "status" in cleaned:
            cleaned["status"] = parse_enum(ExpenseStatus, cleaned["status"])
        if "description" in cleaned:
            description = (cleaned["description"] or "").strip()
            if not description or len(description) > 255:
                raise ValidationError("Description must be between 1 and 255 characters")
            cleaned["description"] = description
        for flag in ("reimbursable", "reimbursed"):
            if flag in cleaned:
                cleaned[flag] = bool(cleaned[flag])
        return cleaned

    # Expenses

    def list_expenses(self, user_id: int, start: date = None, end: date = None,
                      categories: Iterable = None, reimbursable: bool = None, reimbursed: bool = None,
                      min_amount=None, max_amount=None, amount_currency: str = None) -> List[Expense]:
        """Filtered view of the trip's expenses."""
        self.require_view(user_id)
        expenses = filter_by_date_range(self.trip.expenses, start, end)
        if categories:
            expenses = filter_by_categories(expenses, categories)
        expenses = filter_by_reimbursement(expenses, reimbursable, reimbursed)
        if min_amount is not None or max_amount is not None:
            expenses = self.ledger.filter_by_amount(expenses, min_amount, max_amount, amount_currency)
        return expenses

    def add_expense(self, user_id: int, amount, currency: str, description: str,
                    category=ExpenseCategory.OTHER, day_number: int = None, expense_date: date = None,
                    status=ExpenseStatus.PAID, **extra) -> Expense:
        """Record an expense and re-evaluate the budget in the same transaction."""
        self.require_edit(user_id)
        unknown = set(extra) - set(EXPENSE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown expense fields: {', '.join(sorted(unknown))}")
        fields = self._clean_expense_fields(dict(
            extra, amount=amount, currency=currency, description=description,
            category=category, status=status,
        ))
        fields["day_number"], fields["expense_date"] = self._resolve_day(day_number, expense_date)
        fields.setdefault("reimbursable", False)
        fields.setdefault("reimbursed", False)

        expense = Expense(**fields)
        with transaction(self.db):
            self.trip.expenses.append(expense)
            self._reevaluate()
        logger.info(
            f"Added expense {expense.id} ({expense.amount} {expense.currency}) to trip {self.trip.id}"
        )
        return expense

    def update_expense(self, user_id: int, expense_id: int, **changes) -> Expense:
        """Change an expense; amount-bearing changes re-evaluate the budget."""
        self.require_edit(user_id)
        expense = self.get_expense(expense_id)
        unknown = set(changes) - set(EXPENSE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown expense fields: {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in changes.items() if v is not None}
        fields = self._clean_expense_fields(changes)
        if "day_number" in fields or "expense_date" in fields:
            fields["day_number"], fields["expense_date"] = self._resolve_day(
                fields.get("day_number"), fields.get("expense_date")
            )

        with transaction(self.db):
            for name, value in fields.items():
                setattr(expense, name, value)
            self._reevaluate()
        logger.info(f"Updated expense {expense_id} on trip {self.trip.id}")
        return expense

    def remove_expense(self, user_id: int, expense_id: int) -> None:
        self.require_edit(user_id)
        expense = self.get_expense(expense_id)
        with transaction(self.db):
            self.trip.expenses.remove(expense)
            self._reevaluate()
        logger.info(f"Removed expense {expense_id} from trip {self.trip.id}")

    # Budget

    def set_budget(self, user_id: int, budget) -> Trip:
        """Set (or with None, clear) the budget amount and re-evaluate."""
        return self.update_budget_settings(user_id, budget=budget)

    def update_budget_settings(self, user_id: int, budget=UNSET, alert_threshold=UNSET,
                               daily_spending_limit=UNSET, category_limits=UNSET) -> Trip:
        """Change budget and alert limits; arguments left UNSET keep their value."""
        self.require_edit(user_id)
        changes = {}
        if budget is not UNSET:
            changes["budget"] = validate_money(budget, "budget") if budget is not None else None
        if alert_threshold is not UNSET:
            changes["alert_threshold"] = (
                validate_threshold(alert_threshold) if alert_threshold is not None else None
            )
        if daily_spending_limit is not UNSET:
            changes["daily_spending_limit"] = (
                validate_money(daily_spending_limit, "daily_spending_limit", allow_zero=False)
                if daily_spending_limit is not None else None
            )
        if category_limits is not UNSET:
            changes["category_limits"] = validate_category_limits(category_limits)

        with transaction(self.db):
            for name, value in changes.items():
                setattr(self.trip, name, value)
            self._reevaluate()
        logger.info(f"Updated budget settings on trip {self.trip.id}: {sorted(changes)}")
        return self.trip

    def evaluate_budget(self, user_id: int) -> BudgetEvaluation:
        """Run the budget monitor; repeated calls without changes create nothing new."""
        self.require_view(user_id)
        with transaction(self.db):
            evaluation = self.monitor.evaluate(self.trip)
            if evaluation.changed:
                self._touch()
        self.last_evaluation = evaluation
        return evaluation

    def get_budget_summary(self, user_id: int) -> BudgetSummary:
        """Best-effort spending summary in the trip currency."""
        self.require_view(user_id)
        trip = self.trip
        currency = trip.currency
        spending = self.ledger.total_in_currency(trip.expenses, currency)
        by_category = self.ledger.total_by_category(trip.expenses, currency)
        by_day = self.ledger.total_by_day(trip.expenses, currency)
        total = spending.amount
        budget = to_decimal(trip.budget) if trip.budget is not None else None

        categories = []
        for category, spent in by_category.totals.items():
            categories.append(BudgetCategoryItem(
                category=category,
                spent_amount=spent,
                expense_count=by_category.counts[category],
                percentage_of_total=float(spent / total * 100) if total > 0 else 0.0,
                percentage_of_budget=float(spent / budget * 100) if budget else 0.0,
            ))
        categories.sort(key=lambda item: item.spent_amount, reverse=True)

        days = [
            BudgetDayItem(day_number=day, spent_amount=spent, expense_count=by_day.counts[day])
            for day, spent in by_day.totals.items()
        ]

        alerts = [
            BudgetAlertResponse.model_validate(alert)
            for alert in trip.alerts
            if alert.status in (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED)
        ]

        return BudgetSummary(
            trip_id=trip.id,
            currency=currency,
            budget=budget,
            total_spent=total,
            remaining=budget - total if budget is not None else None,
            usage_percentage=usage_percentage(total, budget),
            threshold_percentage=self.monitor.threshold_for(trip),
            is_over_budget=budget is not None and total > budget,
            categories=categories,
            days=days,
            totals_by_currency=self.ledger.total_by_currency(trip.expenses),
            alerts=alerts,
            warnings=spending.warnings,
        )

    # Alerts

    def acknowledge_alert(self, user_id: int, alert_id: int, action_taken: str = None) -> BudgetAlert:
        self.require_edit(user_id)
        alert = self.get_alert(alert_id)
        with transaction(self.db):
            ensure_current(self.db, alert)
            alert.acknowledge(self.clock(), action_taken)
        logger.info(f"Alert {alert_id} on trip {self.trip.id} acknowledged by user {user_id}")
        return alert

    def dismiss_alert(self, user_id: int, alert_id: int) -> BudgetAlert:
        self.require_edit(user_id)
        alert = self.get_alert(alert_id)
        with transaction(self.db):
            ensure_current(self.db, alert)
            alert.dismiss()
        logger.info(f"Alert {alert_id} on trip {self.trip.id} dismissed by user {user_id}")
        return alert

    def resolve_alert(self, user_id: int, alert_id: int, action_taken: str = None) -> BudgetAlert:
        self.require_edit(user_id)
        alert = self.get_alert(alert_id)
        with transaction(self.db):
            ensure_current(self.db, alert)
            alert.resolve(self.clock(), action_taken)
        logger.info(f"Alert {alert_id} on trip {self.trip.id} resolved by user {user_id}")
        return alert

    # Sharing

    def invite_share(self, user_id: int, target_user_id: int, permission="View",
                     expires_at: datetime = None, message: str = None, with_token: bool = False) -> TripShare:
        """Invite target_user_id; lapsed invitations are expired first."""
        self.require_admin(user_id)
        target = self.db.get(User, target_user_id)
        if not target or not target.is_active:
            raise NotFoundError(f"User {target_user_id} not found")
        with transaction(self.db):
            self.shares.expire_lapsed(self.db, self.trip)
            share = self.shares.invite(
                self.trip, target_user_id, permission,
                expires_at=expires_at, message=message, with_token=with_token
            )
            self._touch()
        return share

    def respond_to_share(self, user_id: int, share_id: int, accept: bool) -> TripShare:
        share = self.get_share(share_id)
        with transaction(self.db):
            self.shares.respond(self.db, share, accept, user_id=user_id)
        return share

    def respond_to_share_token(self, user_id: int, token: str, accept: bool) -> TripShare:
        share = self.shares.find_by_token(self.db, token)
        if share.trip_id != self.trip.id:
            raise NotFoundError("Share link not found")
        return self.respond_to_share(user_id, share.id, accept)

    def revoke_share(self, user_id: int, share_id: int) -> TripShare:
        self.require_admin(user_id)
        share = self.get_share(share_id)
        with transaction(self.db):
            self.shares.revoke(self.db, share)
        return share

    def expire_shares(self) -> List[TripShare]:
        """Persist Expired status for lapsed invitations."""
        with transaction(self.db):
            expired = self.shares.expire_lapsed(self.db, self.trip)
        return expired

    def delete_share(self, user_id: int, share_id: int) -> None:
        """Remove a share record; expenses and alerts are untouched."""
        self.require_admin(user_id)
        share = self.get_share(share_id)
        with transaction(self.db):
            self.trip.shares.remove(share)
            self._touch()
        logger.info(f"Deleted share {share_id} from trip {self.trip.id}")

    # Trip

    def update_details(self, user_id: int, title: str = None, destination: str = None,
                       status=None, visibility=None) -> Trip:
        self.require_edit(user_id)
        changes = {}
        if title is not None:
            if not title.strip():
                raise ValidationError("Trip title is required")
            changes["title"] = title.strip()
        if destination is not None:
            changes["destination"] = destination.strip()
        if status is not None:
            changes["status"] = parse_enum(TripStatus, status)
        if visibility is not None:
            changes["visibility"] = parse_enum(TripVisibility, visibility)
        with transaction(self.db):
            for name, value in changes.items():
                setattr(self.trip, name, value)
        return self.trip

    def delete(self, user_id: int) -> None:
        """Delete the trip with its expenses, shares and alerts."""
        self.require_owner(user_id)
        trip_id = self.trip.id
        with transaction(self.db):
            self.db.delete(self.trip)
        logger.info(f"Deleted trip {trip_id}")

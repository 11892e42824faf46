"""Models package - Import all models for SQLAlchemy registration."""
from triptracker.models.user import User
from triptracker.models.trip import Trip, TripStatus, TripVisibility
from triptracker.models.expense import Expense, ExpenseCategory, ExpenseStatus
from triptracker.models.budget_alert import BudgetAlert, AlertType, AlertStatus
from triptracker.models.trip_share import TripShare, SharePermission, ShareStatus

__all__ = [
    "User",
    "Trip",
    "TripStatus",
    "TripVisibility",
    "Expense",
    "ExpenseCategory",
    "ExpenseStatus",
    "BudgetAlert",
    "AlertType",
    "AlertStatus",
    "TripShare",
    "SharePermission",
    "ShareStatus",
]

"""
Pydantic schemas for budgets and budget alerts.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from decimal import Decimal
from triptracker.models.budget_alert import AlertStatus, AlertType
from triptracker.models.expense import ExpenseCategory


class BudgetUpdate(BaseModel):
    """Schema for changing a trip's budget and alert limits. Omitted fields are left unchanged."""
    budget: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    clear_budget: bool = False  # Remove the budget entirely
    alert_threshold: Optional[Decimal] = Field(None, ge=0, le=100)
    daily_spending_limit: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    category_limits: Optional[Dict[ExpenseCategory, Decimal]] = None


class AlertAction(BaseModel):
    """Schema for acknowledging or resolving an alert."""
    action_taken: Optional[str] = Field(None, max_length=255)


class BudgetAlertResponse(BaseModel):
    """Schema for budget alert response."""
    id: int
    trip_id: int
    alert_type: AlertType
    status: AlertStatus
    threshold_percentage: Decimal
    current_amount: Decimal
    budget_amount: Decimal
    currency: str
    usage_percentage: Decimal
    remaining_budget: Decimal
    is_over_budget: bool
    is_near_threshold: bool
    is_urgent: bool
    formatted_message: str
    category: Optional[str] = None
    day_number: Optional[int] = None
    action_taken: Optional[str] = None
    triggered_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BudgetCategoryItem(BaseModel):
    """Schema for category spending item in budget summary."""
    category: ExpenseCategory
    spent_amount: Decimal  # Amount spent in this category (trip currency)
    expense_count: int  # Number of expenses in this category
    percentage_of_total: float  # Percentage of total spending (0-100)
    percentage_of_budget: float  # Percentage of budget (0 when no budget)


class BudgetDayItem(BaseModel):
    """Schema for per-day spending in budget summary."""
    day_number: int
    spent_amount: Decimal
    expense_count: int


class BudgetSummary(BaseModel):
    """Schema for budget summary with spending details."""
    trip_id: int
    currency: str  # Trip's budget currency
    budget: Optional[Decimal] = None
    total_spent: Decimal
    remaining: Optional[Decimal] = None
    usage_percentage: Decimal
    threshold_percentage: Decimal
    is_over_budget: bool
    categories: List[BudgetCategoryItem] = []  # Sorted by amount, descending
    days: List[BudgetDayItem] = []
    totals_by_currency: Dict[str, Decimal] = {}
    alerts: List[BudgetAlertResponse] = []  # Active and acknowledged alerts
    warnings: List[str] = []  # Expenses left out of the totals


class BudgetEvaluationResponse(BaseModel):
    """Schema for the result of a budget evaluation."""
    trip_id: int
    currency: str
    budget: Optional[Decimal] = None
    total_spent: Decimal
    usage_percentage: Decimal
    threshold_percentage: Decimal
    is_over_budget: bool
    created: List[BudgetAlertResponse] = []
    updated: List[BudgetAlertResponse] = []
    resolved: List[BudgetAlertResponse] = []
    warnings: List[str] = []

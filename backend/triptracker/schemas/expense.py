"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal
from triptracker.models.expense import ExpenseCategory, ExpenseStatus


class ExpenseBase(BaseModel):
    """Base expense schema."""
    category: ExpenseCategory = ExpenseCategory.OTHER
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, decimal_places=2)  # In the expense's own currency
    currency: str = Field("USD", pattern="^[A-Za-z]{3}$")
    status: ExpenseStatus = ExpenseStatus.PAID
    vendor: Optional[str] = Field(None, max_length=200)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    reimbursable: bool = False
    reimbursed: bool = False
    reimbursement_reference: Optional[str] = Field(None, max_length=100)


class ExpenseCreate(ExpenseBase):
    """Schema for expense creation. Give a day number, a date, or both."""
    day_number: Optional[int] = Field(None, ge=1)
    expense_date: Optional[date] = None


class ExpenseUpdate(BaseModel):
    """Schema for expense update."""
    day_number: Optional[int] = Field(None, ge=1)
    expense_date: Optional[date] = None
    category: Optional[ExpenseCategory] = None
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    currency: Optional[str] = Field(None, pattern="^[A-Za-z]{3}$")
    status: Optional[ExpenseStatus] = None
    vendor: Optional[str] = Field(None, max_length=200)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    reimbursable: Optional[bool] = None
    reimbursed: Optional[bool] = None
    reimbursement_reference: Optional[str] = Field(None, max_length=100)


class ExpenseResponse(ExpenseBase):
    """Schema for expense response."""
    id: int
    trip_id: int
    day_number: int
    expense_date: date
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    """Schema for a filtered expense list with its total in the trip currency."""
    trip_id: int
    currency: str
    total: Decimal
    totals_by_currency: Dict[str, Decimal]  # Raw sums per original currency
    expenses: List[ExpenseResponse]
    warnings: List[str] = []

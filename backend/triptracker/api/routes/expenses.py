"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from decimal import Decimal
from triptracker.db.session import get_db
from triptracker.models.user import User
from triptracker.models.expense import ExpenseCategory
from triptracker.schemas.expense import (
    ExpenseCreate, ExpenseListResponse, ExpenseResponse, ExpenseUpdate
)
from triptracker.api.dependencies import get_current_user, get_currency_converter
from triptracker.services.currency_service import CurrencyConverter
from triptracker.services.trip_service import TripAggregate

router = APIRouter(prefix="/trips", tags=["expenses"])


@router.get("/{trip_id}/expenses", response_model=ExpenseListResponse)
async def list_expenses(
    trip_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
    category: Optional[List[ExpenseCategory]] = Query(None),
    reimbursable: Optional[bool] = None,
    reimbursed: Optional[bool] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    amount_currency: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """
    List a trip's expenses.

    Amount filters compare in amount_currency when given, otherwise in each
    expense's own currency. The total is in the trip currency.
    """
    aggregate = TripAggregate.load(db, trip_id, converter=converter)
    expenses = aggregate.list_expenses(
        current_user.id,
        start=start,
        end=end,
        categories=category,
        reimbursable=reimbursable,
        reimbursed=reimbursed,
        min_amount=min_amount,
        max_amount=max_amount,
        amount_currency=amount_currency
    )
    total = aggregate.ledger.total_in_currency(expenses, aggregate.trip.currency)

    return ExpenseListResponse(
        trip_id=trip_id,
        currency=total.currency,
        total=total.amount,
        totals_by_currency=aggregate.ledger.total_by_currency(expenses),
        expenses=[ExpenseResponse.model_validate(e) for e in expenses],
        warnings=total.warnings
    )


@router.post("/{trip_id}/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    trip_id: int,
    expense_data: ExpenseCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Record an expense; the trip budget is re-evaluated."""
    aggregate = TripAggregate.load(db, trip_id, converter=converter)
    fields = expense_data.model_dump()
    return aggregate.add_expense(current_user.id, **fields)


@router.put("/{trip_id}/expenses/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    trip_id: int,
    expense_id: int,
    expense_data: ExpenseUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Update an expense."""
    aggregate = TripAggregate.load(db, trip_id, converter=converter)
    return aggregate.update_expense(
        current_user.id, expense_id, **expense_data.model_dump(exclude_unset=True)
    )


@router.delete("/{trip_id}/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    trip_id: int,
    expense_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Delete an expense."""
    aggregate = TripAggregate.load(db, trip_id, converter=converter)
    aggregate.remove_expense(current_user.id, expense_id)

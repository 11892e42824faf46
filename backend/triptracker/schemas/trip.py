"""
Pydantic schemas for Trip entity.
"""
from pydantic import BaseModel, Field, model_validator
from typing import Dict, Optional
from datetime import date, datetime
from decimal import Decimal
from triptracker.models.expense import ExpenseCategory
from triptracker.models.trip import TripStatus, TripVisibility


class TripBase(BaseModel):
    """Base trip schema."""
    title: str = Field(..., min_length=1, max_length=200)
    destination: str = Field(..., min_length=1, max_length=200)
    start_date: date
    end_date: date
    budget: Optional[Decimal] = Field(None, ge=0, decimal_places=2)  # Omit for no budget
    currency: str = Field("USD", pattern="^[A-Za-z]{3}$")  # Currency of the budget
    visibility: TripVisibility = TripVisibility.PRIVATE

    @model_validator(mode="after")
    def end_after_start(self) -> "TripBase":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class TripCreate(TripBase):
    """Schema for trip creation."""
    alert_threshold: Optional[Decimal] = Field(None, ge=0, le=100)
    daily_spending_limit: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    category_limits: Optional[Dict[ExpenseCategory, Decimal]] = None


class TripUpdate(BaseModel):
    """Schema for trip update."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    destination: Optional[str] = Field(None, min_length=1, max_length=200)
    status: Optional[TripStatus] = None
    visibility: Optional[TripVisibility] = None


class TripResponse(TripBase):
    """Schema for trip response."""
    id: int
    owner_id: int
    status: TripStatus
    alert_threshold: Optional[Decimal] = None
    daily_spending_limit: Optional[Decimal] = None
    category_limits: Optional[Dict[str, Decimal]] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

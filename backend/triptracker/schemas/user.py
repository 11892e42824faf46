"""
Pydantic schemas for User entity.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class UserBase(BaseModel):
    """Base user schema."""
    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr


class UserCreate(UserBase):
    """Schema for user creation."""
    preferred_currency: str = Field("USD", pattern="^[A-Za-z]{3}$")


class UserUpdate(BaseModel):
    """Schema for user update."""
    email: Optional[EmailStr] = None
    preferred_currency: Optional[str] = Field(None, pattern="^[A-Za-z]{3}$")


class UserResponse(UserBase):
    """Schema for user response."""
    id: int
    preferred_currency: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True

"""
Shared FastAPI dependencies.

Token verification happens upstream; the gateway forwards the
authenticated user's id in the X-User-Id header.
"""
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from triptracker.db.session import get_db
from triptracker.models.user import User
from triptracker.services.currency_service import CurrencyConverter, get_converter


def get_current_user(
    x_user_id: int = Header(..., alias="X-User-Id"),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the acting user from the forwarded identity header."""
    user = db.get(User, x_user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive user"
        )
    return user


def get_currency_converter() -> CurrencyConverter:
    """Converter built from the configured rate table."""
    return get_converter()

"""
User management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from triptracker.db.session import get_db
from triptracker.schemas.user import UserCreate, UserResponse, UserUpdate
from triptracker.models.user import User
from triptracker.api.dependencies import get_current_user, get_currency_converter
from triptracker.services.currency_service import CurrencyConverter

router = APIRouter(prefix="/users", tags=["users"])


def find_registered(db: Session, username: str, email: str):
    """Return a user already holding username or email, if any."""
    return db.query(User).filter((User.username == username) | (User.email == email)).first()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Register a user profile."""
    if find_registered(db, user_data.username, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email already registered"
        )

    user = User(
        username=user_data.username,
        email=user_data.email,
        preferred_currency=converter.require_currency(user_data.preferred_currency)
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email already registered"
        )
    db.refresh(user)
    return user


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return current_user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get user by ID."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.patch("/me", response_model=UserResponse)
async def update_current_user(
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Update email or preferred currency."""
    if user_data.email is not None:
        taken = db.query(User).filter(User.email == user_data.email, User.id != current_user.id).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )
        current_user.email = user_data.email
    if user_data.preferred_currency is not None:
        current_user.preferred_currency = converter.require_currency(user_data.preferred_currency)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    db.refresh(current_user)
    return current_user

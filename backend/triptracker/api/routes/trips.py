"""
Trip management routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from triptracker.db.session import get_db
from triptracker.models.user import User
from triptracker.models.trip import Trip
from triptracker.models.trip_share import TripShare, ShareStatus
from triptracker.schemas.trip import TripCreate, TripResponse, TripUpdate
from triptracker.schemas.budget import BudgetUpdate
from triptracker.schemas.share import AccessResponse
from triptracker.api.dependencies import get_current_user, get_currency_converter
from triptracker.services.currency_service import CurrencyConverter
from triptracker.services.share_service import TripShareManager
from triptracker.services.trip_service import TripAggregate, UNSET, create_trip

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_new_trip(
    trip_data: TripCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Create a new trip owned by the current user."""
    return create_trip(
        db,
        owner_id=current_user.id,
        title=trip_data.title,
        destination=trip_data.destination,
        start_date=trip_data.start_date,
        end_date=trip_data.end_date,
        budget=trip_data.budget,
        currency=trip_data.currency,
        visibility=trip_data.visibility,
        alert_threshold=trip_data.alert_threshold,
        daily_spending_limit=trip_data.daily_spending_limit,
        category_limits=trip_data.category_limits,
        converter=converter
    )


@router.get("", response_model=List[TripResponse])
async def list_trips(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List trips the current user owns or has an accepted share for."""
    owned = db.query(Trip).filter(Trip.owner_id == current_user.id).all()
    shared = db.query(Trip).join(TripShare, TripShare.trip_id == Trip.id).filter(
        TripShare.user_id == current_user.id,
        TripShare.status == ShareStatus.ACCEPTED
    ).all()

    # Shares may have lapsed since they were accepted
    manager = TripShareManager()
    visible = {trip.id: trip for trip in owned}
    for trip in shared:
        if manager.can_view(trip, current_user.id):
            visible[trip.id] = trip
    return sorted(visible.values(), key=lambda t: t.start_date)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get trip details."""
    aggregate = TripAggregate.load(db, trip_id)
    aggregate.require_view(current_user.id)
    return aggregate.trip


@router.patch("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: int,
    trip_data: TripUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update title, destination, status or visibility."""
    aggregate = TripAggregate.load(db, trip_id)
    return aggregate.update_details(current_user.id, **trip_data.model_dump(exclude_unset=True))


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a trip together with its expenses, shares and alerts."""
    TripAggregate.load(db, trip_id).delete(current_user.id)


@router.put("/{trip_id}/budget", response_model=TripResponse)
async def update_budget(
    trip_id: int,
    budget_data: BudgetUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Set or edit the budget and alert limits; the budget is re-evaluated."""
    aggregate = TripAggregate.load(db, trip_id, converter=converter)
    provided = budget_data.model_dump(exclude_unset=True)

    budget = UNSET
    if budget_data.clear_budget:
        budget = None
    elif "budget" in provided:
        budget = budget_data.budget

    return aggregate.update_budget_settings(
        current_user.id,
        budget=budget,
        alert_threshold=provided.get("alert_threshold", UNSET),
        daily_spending_limit=provided.get("daily_spending_limit", UNSET),
        category_limits=provided.get("category_limits", UNSET)
    )


@router.get("/{trip_id}/access", response_model=AccessResponse)
async def get_access(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Report what the current user may do on a trip."""
    aggregate = TripAggregate.load(db, trip_id)
    return AccessResponse(
        trip_id=trip_id,
        user_id=current_user.id,
        can_view=aggregate.can_view(current_user.id),
        can_edit=aggregate.can_edit(current_user.id),
        can_admin=aggregate.can_admin(current_user.id)
    )

"""
Trip sharing routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from triptracker.db.session import get_db
from triptracker.models.user import User
from triptracker.schemas.share import ShareInvite, ShareRespond, ShareResponse
from triptracker.api.dependencies import get_current_user
from triptracker.services.trip_service import TripAggregate

router = APIRouter(tags=["shares"])


@router.get("/trips/{trip_id}/shares", response_model=List[ShareResponse])
async def list_shares(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Admins see every share on the trip; other users only their own."""
    aggregate = TripAggregate.load(db, trip_id)
    if aggregate.can_admin(current_user.id):
        return aggregate.trip.shares
    return [share for share in aggregate.trip.shares if share.user_id == current_user.id]


@router.post("/trips/{trip_id}/shares", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
async def invite_user(
    trip_id: int,
    invite: ShareInvite,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Invite a user to a trip."""
    aggregate = TripAggregate.load(db, trip_id)
    return aggregate.invite_share(
        current_user.id,
        invite.user_id,
        invite.permission,
        expires_at=invite.expires_at,
        message=invite.message,
        with_token=invite.with_token
    )


@router.post("/trips/{trip_id}/shares/expire", response_model=List[ShareResponse])
async def expire_shares(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record Expired status on every lapsed invitation."""
    aggregate = TripAggregate.load(db, trip_id)
    aggregate.require_admin(current_user.id)
    return aggregate.expire_shares()


@router.post("/trips/{trip_id}/shares/{share_id}/respond", response_model=ShareResponse)
async def respond_to_share(
    trip_id: int,
    share_id: int,
    response: ShareRespond,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accept or decline an invitation addressed to the current user."""
    aggregate = TripAggregate.load(db, trip_id)
    return aggregate.respond_to_share(current_user.id, share_id, response.accept)


@router.post("/trips/{trip_id}/shares/{share_id}/revoke", response_model=ShareResponse)
async def revoke_share(
    trip_id: int,
    share_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    aggregate = TripAggregate.load(db, trip_id)
    return aggregate.revoke_share(current_user.id, share_id)


@router.delete("/trips/{trip_id}/shares/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_share(
    trip_id: int,
    share_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    aggregate = TripAggregate.load(db, trip_id)
    aggregate.delete_share(current_user.id, share_id)


@router.post("/shares/token/{token}/respond", response_model=ShareResponse)
async def respond_by_token(
    token: str,
    response: ShareRespond,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accept or decline an invitation through its share link."""
    aggregate = TripAggregate.load_by_share_token(db, token)
    return aggregate.respond_to_share_token(current_user.id, token, response.accept)

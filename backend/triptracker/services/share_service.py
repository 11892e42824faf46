"""
Trip sharing: invitation lifecycle and access checks.

Expiry is evaluated lazily: a share whose expires_at has passed grants no
access from that instant, even while its stored status is still Pending or
Accepted. ``expire_lapsed`` later records the Expired status.
"""
from datetime import datetime
from typing import Callable, List, Optional
import logging
import secrets

from sqlalchemy.orm import Session

from triptracker.core.config import settings
from triptracker.core.errors import (
    DuplicateActiveShareError, InvalidTransitionError, NotFoundError,
    PermissionDeniedError, ValidationError
)
from triptracker.core.utils import ensure_utc, parse_enum, utcnow
from triptracker.db.locking import ensure_current
from triptracker.models.trip import Trip
from triptracker.models.trip_share import SharePermission, ShareStatus, TripShare

logger = logging.getLogger(__name__)


class TripShareManager:
    """
    Owns share state transitions and answers view/edit/admin questions.

    Args:
        clock: Returns the current aware datetime
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    # Access queries

    def _has(self, trip: Trip, user_id: int, permission: SharePermission) -> bool:
        if user_id is None:
            return False
        if trip.is_owner(user_id):
            return True
        now = self.clock()
        return any(
            share.user_id == user_id and share.grants(permission, now)
            for share in trip.shares
        )

    def can_view(self, trip: Trip, user_id: int) -> bool:
        """Owner, or any accepted and unexpired share."""
        return self._has(trip, user_id, SharePermission.VIEW)

    def can_edit(self, trip: Trip, user_id: int) -> bool:
        """Owner, or an accepted and unexpired Edit/Admin share."""
        return self._has(trip, user_id, SharePermission.EDIT)

    def can_admin(self, trip: Trip, user_id: int) -> bool:
        """Owner, or an accepted and unexpired Admin share."""
        return self._has(trip, user_id, SharePermission.ADMIN)

    def active_share_for(self, trip: Trip, user_id: int) -> Optional[TripShare]:
        now = self.clock()
        for share in trip.shares:
            if share.user_id == user_id and share.is_active(now):
                return share
        return None

    # Lifecycle

    def invite(self, trip: Trip, user_id: int, permission=SharePermission.VIEW,
               expires_at: datetime = None, message: str = None, with_token: bool = False) -> TripShare:
        """
        Create a Pending share for user_id.

        A previous Declined, Revoked or Expired share is left as it is and a
        new record is created.

        Raises:
            DuplicateActiveShareError: user already has a pending or accepted share
            ValidationError: inviting the owner, or expiry not in the future
        """
        permission = parse_enum(SharePermission, permission)
        if trip.is_owner(user_id):
            raise ValidationError("The trip owner cannot be invited to their own trip")
        if expires_at is not None:
            expires_at = ensure_utc(expires_at)
            if expires_at <= self.clock():
                raise ValidationError("Share expiry must be in the future")

        existing = self.active_share_for(trip, user_id)
        if existing is not None:
            raise DuplicateActiveShareError(
                f"User {user_id} already has a {existing.status.value.lower()} share for trip {trip.id}",
                details={"share_id": existing.id, "status": existing.status.value},
            )

        share = TripShare(
            user_id=user_id,
            permission=permission,
            status=ShareStatus.PENDING,
            message=message,
            expires_at=expires_at,
            share_token=secrets.token_urlsafe(settings.SHARE_TOKEN_BYTES) if with_token else None,
        )
        trip.shares.append(share)
        logger.info(f"Invited user {user_id} to trip {trip.id} with {permission.value} permission")
        return share

    def respond(self, db: Session, share: TripShare, accept: bool, user_id: int = None) -> TripShare:
        """
        Accept or decline a Pending share.

        Raises:
            PermissionDeniedError: user_id is not the invitee
            InvalidTransitionError: share is not Pending or has lapsed
            ConcurrentModificationError: share changed since it was loaded
        """
        if user_id is not None and share.user_id != user_id:
            raise PermissionDeniedError("Only the invited user can respond to a share")
        if share.status != ShareStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot respond to a share that is {share.status.value}",
                details={"status": share.status.value},
            )
        now = self.clock()
        if share.is_lapsed(now):
            raise InvalidTransitionError("Share invitation has expired", details={"status": "Expired"})

        ensure_current(db, share)
        if accept:
            share.accept(now)
        else:
            share.decline()
        logger.info(f"Share {share.id} for trip {share.trip_id} is now {share.status.value}")
        return share

    def revoke(self, db: Session, share: TripShare) -> TripShare:
        """Revoke a Pending or Accepted share."""
        ensure_current(db, share)
        share.revoke()
        logger.info(f"Share {share.id} for trip {share.trip_id} revoked")
        return share

    def expire_lapsed(self, db: Session, trip: Trip) -> List[TripShare]:
        """Move lapsed Pending/Accepted shares to Expired."""
        now = self.clock()
        expired = []
        for share in trip.shares:
            if share.status in (ShareStatus.PENDING, ShareStatus.ACCEPTED) and share.is_lapsed(now):
                ensure_current(db, share)
                share.expire()
                expired.append(share)
        if expired:
            logger.info(f"Expired {len(expired)} share(s) on trip {trip.id}")
        return expired

    def find_by_token(self, db: Session, token: str) -> TripShare:
        share = db.query(TripShare).filter(TripShare.share_token == token).first()
        if not share:
            raise NotFoundError("Share link not found")
        return share

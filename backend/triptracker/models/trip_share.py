"""
Trip share model for inviting other users to a trip.
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, Enum as SQLEnum, ForeignKey, Integer
from triptracker.core.utils import ensure_utc
from triptracker.db.base import BaseModel
from triptracker.models.transitions import check_transition
import enum


class SharePermission(str, enum.Enum):
    """Access level granted by a share."""
    VIEW = "View"
    EDIT = "Edit"
    ADMIN = "Admin"


class ShareStatus(str, enum.Enum):
    """Share invitation status enumeration."""
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    EXPIRED = "Expired"
    REVOKED = "Revoked"


# Accepted -> Expired is only applied by the expiry sweep
SHARE_TRANSITIONS = {
    ShareStatus.PENDING: frozenset({
        ShareStatus.ACCEPTED, ShareStatus.DECLINED, ShareStatus.REVOKED, ShareStatus.EXPIRED
    }),
    ShareStatus.ACCEPTED: frozenset({ShareStatus.REVOKED, ShareStatus.EXPIRED}),
    ShareStatus.DECLINED: frozenset(),
    ShareStatus.EXPIRED: frozenset(),
    ShareStatus.REVOKED: frozenset(),
}

ACTIVE_SHARE_STATUSES = frozenset({ShareStatus.PENDING, ShareStatus.ACCEPTED})

PERMISSION_RANK = {
    SharePermission.VIEW: 1,
    SharePermission.EDIT: 2,
    SharePermission.ADMIN: 3,
}


class TripShare(BaseModel):
    """Invitation granting another user access to a trip."""
    __tablename__ = "trip_shares"

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    permission = Column(SQLEnum(SharePermission), nullable=False, default=SharePermission.VIEW)
    status = Column(SQLEnum(ShareStatus), nullable=False, default=ShareStatus.PENDING)
    message = Column(Text, nullable=True)
    share_token = Column(String(64), unique=True, nullable=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def is_lapsed(self, now: datetime) -> bool:
        """expires_at has passed, whatever the stored status says."""
        return self.expires_at is not None and ensure_utc(self.expires_at) < now

    def is_active(self, now: datetime) -> bool:
        return self.status in ACTIVE_SHARE_STATUSES and not self.is_lapsed(now)

    def grants(self, permission: SharePermission, now: datetime) -> bool:
        """Accepted, not lapsed, and at least the requested access level."""
        return (
            self.status == ShareStatus.ACCEPTED
            and not self.is_lapsed(now)
            and PERMISSION_RANK[self.permission] >= PERMISSION_RANK[permission]
        )

    def accept(self, at: datetime) -> None:
        check_transition(SHARE_TRANSITIONS, "TripShare", self.status, ShareStatus.ACCEPTED)
        self.status = ShareStatus.ACCEPTED
        self.accepted_at = at

    def decline(self) -> None:
        check_transition(SHARE_TRANSITIONS, "TripShare", self.status, ShareStatus.DECLINED)
        self.status = ShareStatus.DECLINED

    def revoke(self) -> None:
        check_transition(SHARE_TRANSITIONS, "TripShare", self.status, ShareStatus.REVOKED)
        self.status = ShareStatus.REVOKED

    def expire(self) -> None:
        check_transition(SHARE_TRANSITIONS, "TripShare", self.status, ShareStatus.EXPIRED)
        self.status = ShareStatus.EXPIRED

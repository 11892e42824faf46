"""
Pydantic schemas for TripShare entity.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from triptracker.models.trip_share import SharePermission, ShareStatus


class ShareInvite(BaseModel):
    """Schema for inviting a user to a trip."""
    user_id: int
    permission: SharePermission = SharePermission.VIEW
    expires_at: Optional[datetime] = None  # Timezone-aware; naive values are read as UTC
    message: Optional[str] = Field(None, max_length=500)
    with_token: bool = False  # Also issue a link token


class ShareRespond(BaseModel):
    """Schema for accepting or declining an invitation."""
    accept: bool


class ShareResponse(BaseModel):
    """Schema for share response."""
    id: int
    trip_id: int
    user_id: int
    permission: SharePermission
    status: ShareStatus
    message: Optional[str] = None
    share_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AccessResponse(BaseModel):
    """Schema for the acting user's access to a trip."""
    trip_id: int
    user_id: int
    can_view: bool
    can_edit: bool
    can_admin: bool

"""Pydantic schemas for RSVPs."""
from __future__ import annotations
from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel

from app.models.rsvp import RSVPStatus
from app.schemas.user import UserBrief, UserSummary


class RSVPRequest(BaseModel):
    status: str  # YES, NO, MAYBE — checked by rsvp_service


class RSVPOut(BaseModel):
    user_id: str
    event_id: UUID
    status: RSVPStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RSVPWithUser(RSVPOut):
    user: UserBrief


class RSVPWithUserRole(RSVPOut):
    user: UserSummary


class EventBrief(BaseModel):
    event_id: UUID
    title: str
    date: datetime

    model_config = {"from_attributes": True}


class RSVPChange(RSVPOut):
    """Upsert result, also used as the broadcast payload."""

    user: UserBrief
    event: EventBrief


class EventWithOrganizerBrief(BaseModel):
    event_id: UUID
    title: str
    description: str
    date: datetime
    location: str
    organizer_id: str
    approved: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    organizer: UserBrief

    model_config = {"from_attributes": True}


class RSVPWithEvent(RSVPOut):
    event: EventWithOrganizerBrief

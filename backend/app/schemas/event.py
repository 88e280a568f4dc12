"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel

from app.schemas.user import UserSummary
from app.schemas.rsvp import RSVPWithUser


class EventCreate(BaseModel):
    title: str
    description: str
    date: datetime
    location: str


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None


class EventOut(BaseModel):
    event_id: UUID
    title: str
    description: str
    date: datetime
    location: str
    organizer_id: str
    approved: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    organizer: UserSummary
    rsvp_count: int = 0

    model_config = {"from_attributes": True}


class EventDetail(EventOut):
    """Single event view: organizer summary plus every RSVP with its user."""

    rsvps: list[RSVPWithUser] = []


class EventDeleted(BaseModel):
    event_id: UUID


class MessageOut(BaseModel):
    message: str

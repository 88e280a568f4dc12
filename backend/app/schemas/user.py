"""Pydantic schemas for Users and authentication."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.models.user import UserRole


class SignupRequest(BaseModel):
    email: str
    password: str
    role: Optional[UserRole] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    user_id: str
    email: str
    role: UserRole
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    token: str
    user: UserOut
    message: str


class ProfileOut(UserOut):
    organized_events: int = 0
    rsvps: int = 0


class UserBrief(BaseModel):
    user_id: str
    email: str

    model_config = {"from_attributes": True}


class UserSummary(UserBrief):
    role: UserRole


class Principal(BaseModel):
    """Authenticated identity carried by a verified token."""

    user_id: str
    email: str
    role: UserRole

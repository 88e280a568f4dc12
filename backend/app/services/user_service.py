"""Signup, login and profile lookups."""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import Conflict, NotFound, Unauthenticated, ValidationError
from app.models.event import Event
from app.models.rsvp import RSVP
from app.models.user import User, UserRole
from app.schemas.user import AuthResponse, Principal, ProfileOut, UserOut
from app.services.credentials import BCRYPT_MAX_BYTES, CredentialService
from app.services.notifications import EmailNotifier

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = BCRYPT_MAX_BYTES


def _principal(user: User) -> Principal:
    return Principal(user_id=user.user_id, email=user.email, role=user.role)


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip()


def signup(
    db: Session,
    credentials: CredentialService,
    notifier: EmailNotifier,
    email: str,
    password: str,
    role: Optional[UserRole] = None,
) -> AuthResponse:
    email = _normalize_email(email)
    if not email or not password:
        raise ValidationError("Email and password are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    if db.query(User).filter(User.email == email).first():
        raise Conflict("User with this email already exists")

    user = User(
        email=email,
        password_hash=credentials.hash_password(password),
        role=role or UserRole.attendee,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address.
        db.rollback()
        raise Conflict("User with this email already exists")
    db.refresh(user)
    logger.info("Created user %s (%s, %s)", user.user_id, user.email, user.role.value)

    try:
        notifier.send_welcome_email(user.email, user.role.value)
    except Exception:
        logger.exception("Welcome e-mail for user %s failed", user.user_id)

    return AuthResponse(
        token=credentials.issue_token(_principal(user)),
        user=UserOut.model_validate(user),
        message="User registered successfully",
    )


def login(db: Session, credentials: CredentialService, email: str, password: str) -> AuthResponse:
    email = _normalize_email(email)
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = db.query(User).filter(User.email == email).first()
    if not user or not credentials.verify_password(password, user.password_hash):
        raise Unauthenticated("Invalid email or password")

    logger.info("User %s logged in", user.user_id)
    return AuthResponse(
        token=credentials.issue_token(_principal(user)),
        user=UserOut.model_validate(user),
        message="Login successful",
    )


def get_profile(db: Session, user_id: str) -> ProfileOut:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFound("User not found")

    organized = db.query(func.count(Event.event_id)).filter(Event.organizer_id == user_id).scalar()
    rsvps = db.query(func.count()).select_from(RSVP).filter(RSVP.user_id == user_id).scalar()
    return ProfileOut(
        **UserOut.model_validate(user).model_dump(),
        organized_events=organized or 0,
        rsvps=rsvps or 0,
    )

"""Signup / login / profile routes."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth import get_credentials, get_current_principal, get_notifier
from app.database import get_db
from app.schemas.user import AuthResponse, LoginRequest, Principal, ProfileOut, SignupRequest
from app.services import user_service
from app.services.credentials import CredentialService
from app.services.notifications import EmailNotifier

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/signup", response_model=AuthResponse)
def signup(
    payload: SignupRequest,
    db: Session = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
    notifier: EmailNotifier = Depends(get_notifier),
):
    """Register a user (role defaults to ATTENDEE) and return a session token."""
    return user_service.signup(
        db=db,
        credentials=credentials,
        notifier=notifier,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
):
    """Exchange email + password for a session token."""
    return user_service.login(db=db, credentials=credentials, email=payload.email, password=payload.password)


@router.get("/me", response_model=ProfileOut)
def me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Current user's profile with organized-event and RSVP counts."""
    return user_service.get_profile(db, principal.user_id)

"""Event and RSVP API routes — delegate to event_service / rsvp_service."""
import logging
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.auth import (
    get_current_principal,
    get_notifier,
    get_registry,
    require_admin,
    require_organizer_or_admin,
)
from app.database import get_db
from app.schemas.event import EventCreate, EventDetail, EventOut, EventUpdate, MessageOut
from app.schemas.rsvp import RSVPChange, RSVPRequest, RSVPWithEvent, RSVPWithUserRole
from app.schemas.user import Principal
from app.services import event_service, rsvp_service
from app.services.connection_registry import ConnectionRegistry
from app.services.notifications import EmailNotifier

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[EventOut])
def list_events(_: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """List approved events, soonest first."""
    return event_service.list_approved(db)


@router.get("/admin/all", response_model=list[EventOut])
def list_all_events(_: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    """List every event including unapproved ones (admin only)."""
    return event_service.list_all(db)


@router.get("/user/rsvps", response_model=list[RSVPWithEvent])
def list_my_rsvps(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """The caller's RSVPs with full event details, newest first."""
    return rsvp_service.list_for_user(db, principal.user_id)


@router.get("/{event_id}", response_model=EventDetail)
def get_event(event_id: UUID, _: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Fetch a single event with its organizer and RSVPs."""
    return event_service.get_event(db, event_id)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    principal: Principal = Depends(require_organizer_or_admin),
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
):
    """Create an event; it stays hidden until an admin approves it."""
    return event_service.create_event(db=db, registry=registry, principal=principal, payload=payload)


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: UUID,
    payload: EventUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
):
    """Update an event (organizer or admin)."""
    return event_service.update_event(
        db=db, registry=registry, principal=principal, event_id=event_id, payload=payload,
    )


@router.delete("/{event_id}", response_model=MessageOut)
def delete_event(
    event_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
):
    """Delete an event and all of its RSVPs (organizer or admin)."""
    event_service.delete_event(db=db, registry=registry, principal=principal, event_id=event_id)
    return MessageOut(message="Event deleted successfully")


@router.put("/{event_id}/approve", response_model=EventOut)
def approve_event(
    event_id: UUID,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
    notifier: EmailNotifier = Depends(get_notifier),
):
    """Approve an event so it becomes visible and accepts RSVPs (admin only)."""
    return event_service.approve_event(db=db, registry=registry, notifier=notifier, event_id=event_id)


@router.post("/{event_id}/rsvp", response_model=RSVPChange, status_code=status.HTTP_201_CREATED)
def rsvp(
    event_id: UUID,
    payload: RSVPRequest,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
):
    """Create or update the caller's RSVP for an approved event."""
    result = rsvp_service.upsert_rsvp(
        db=db, registry=registry, user_id=principal.user_id, event_id=event_id, status=payload.status,
    )
    response.headers["X-RSVP-Created"] = "true" if result.created else "false"
    return result.rsvp


@router.get("/{event_id}/rsvps", response_model=list[RSVPWithUserRole])
def list_event_rsvps(event_id: UUID, _: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """All RSVPs for an event, newest first."""
    return rsvp_service.list_for_event(db, event_id)


@router.delete("/{event_id}/rsvp", response_model=MessageOut)
def delete_rsvp(
    event_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Remove the caller's RSVP for an event."""
    rsvp_service.delete_rsvp(db, principal.user_id, event_id)
    return MessageOut(message="RSVP deleted successfully")

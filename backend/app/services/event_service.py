"""Event lifecycle service — creation, mutation, deletion and approval.

Responsibilities:
- Ownership hook: only the organizer or an ADMIN may update/delete
- Date validation: event dates must be strictly in the future
- Approval gate: approved flips false → true exactly once
- Cascading delete: RSVPs first, then the event, in one transaction
- Real-time fan-out of every successful change through the registry
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.auth import can_modify
from app.errors import AlreadyApproved, Forbidden, NotFound, ValidationError
from app.models.event import Event
from app.models.rsvp import RSVP
from app.schemas.event import EventCreate, EventDeleted, EventOut, EventUpdate
from app.schemas.user import Principal
from app.services.connection_registry import BroadcastType, ConnectionRegistry
from app.services.notifications import EmailNotifier

logger = logging.getLogger(__name__)

APPROVAL_MESSAGE = "Your event has been approved and is now visible to all users!"
TEXT_FIELDS = ("title", "description", "location")


def _event_payload(event: Event) -> dict[str, Any]:
    """Serialize an event to the JSON-safe broadcast payload."""
    return EventOut.model_validate(event).model_dump(mode="json")


def _validate_future(date: datetime, now: Optional[datetime] = None) -> datetime:
    """Naive datetimes are taken as UTC; the instant must be after ``now``."""
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    date = date.astimezone(timezone.utc)
    now = now or datetime.now(timezone.utc)
    if date <= now:
        raise ValidationError("Event date must be in the future")
    return date


def _validate_text(field: str, value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value


def _get_or_404(db: Session, event_id: uuid.UUID) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    return event


def list_approved(db: Session) -> list[Event]:
    """Publicly visible events, soonest first."""
    return (
        db.query(Event)
        .options(selectinload(Event.rsvps))
        .filter(Event.approved.is_(True))
        .order_by(Event.date.asc())
        .all()
    )


def list_all(db: Session) -> list[Event]:
    """Every event including those awaiting approval, soonest first."""
    return db.query(Event).options(selectinload(Event.rsvps)).order_by(Event.date.asc()).all()


def get_event(db: Session, event_id: uuid.UUID) -> Event:
    event = (
        db.query(Event)
        .options(selectinload(Event.rsvps))
        .filter(Event.event_id == event_id)
        .first()
    )
    if not event:
        raise NotFound("Event not found")
    return event


def create_event(
    db: Session,
    registry: ConnectionRegistry,
    principal: Principal,
    payload: EventCreate,
) -> Event:
    """Create an unapproved event owned by ``principal``."""
    fields = {name: _validate_text(name, getattr(payload, name)) for name in TEXT_FIELDS}
    date = _validate_future(payload.date)

    event = Event(
        **fields,
        date=date,
        organizer_id=principal.user_id,
        approved=False,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by organizer %s", event.title, event.event_id, principal.user_id)

    registry.publish(BroadcastType.event_created, _event_payload(event))
    return event


def update_event(
    db: Session,
    registry: ConnectionRegistry,
    principal: Principal,
    event_id: uuid.UUID,
    payload: EventUpdate,
) -> Event:
    """Apply the supplied fields; omitted or null fields are left unchanged."""
    event = _get_or_404(db, event_id)
    if not can_modify(principal, event):
        raise Forbidden("You do not have permission to update this event")

    updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    for name in TEXT_FIELDS:
        if name in updates:
            _validate_text(name, updates[name])
    if "date" in updates:
        updates["date"] = _validate_future(updates["date"])

    for field, value in updates.items():
        setattr(event, field, value)
    if updates:
        event.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(event)
    logger.info("Updated event %s fields=%s by %s", event_id, sorted(updates), principal.user_id)

    registry.publish(BroadcastType.event_updated, _event_payload(event))
    return event


def delete_event(
    db: Session,
    registry: ConnectionRegistry,
    principal: Principal,
    event_id: uuid.UUID,
) -> None:
    """Delete the event's RSVPs, then the event itself, in one commit."""
    event = _get_or_404(db, event_id)
    if not can_modify(principal, event):
        raise Forbidden("You do not have permission to delete this event")

    removed = db.query(RSVP).filter(RSVP.event_id == event_id).delete(synchronize_session=False)
    db.query(Event).filter(Event.event_id == event_id).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted event %s and %d RSVPs by %s", event_id, removed, principal.user_id)

    registry.publish(BroadcastType.event_deleted, EventDeleted(event_id=event_id).model_dump(mode="json"))


def approve_event(
    db: Session,
    registry: ConnectionRegistry,
    notifier: EmailNotifier,
    event_id: uuid.UUID,
) -> Event:
    """Flip approved to true, notify the organizer, then broadcast.

    The flip is a conditional UPDATE so that of two concurrent approvals only
    one matches a row; the other sees ``AlreadyApproved`` and sends nothing.
    """
    event = _get_or_404(db, event_id)
    if event.approved:
        raise AlreadyApproved()

    matched = (
        db.query(Event)
        .filter(Event.event_id == event_id, Event.approved.is_(False))
        .update(
            {Event.approved: True, Event.updated_at: func.now()},
            synchronize_session=False,
        )
    )
    if matched == 0:
        db.rollback()
        raise AlreadyApproved()
    db.commit()
    db.refresh(event)
    logger.info("Approved event %s", event_id)

    try:
        notifier.send_event_notification(event.organizer.email, event.title, APPROVAL_MESSAGE)
    except Exception:
        logger.exception("Approval notification for event %s failed", event_id)

    registry.publish(BroadcastType.event_approved, _event_payload(event))
    return event

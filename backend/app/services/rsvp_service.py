"""RSVP service — per-(user, event) attendance behind the approval gate."""
import logging
import uuid
from datetime import datetime, timezone
from typing import NamedTuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.errors import EventNotApproved, NotFound, ValidationError
from app.models.event import Event
from app.models.rsvp import RSVP, RSVPStatus
from app.schemas.rsvp import RSVPChange
from app.services.connection_registry import BroadcastType, ConnectionRegistry

logger = logging.getLogger(__name__)


class UpsertResult(NamedTuple):
    rsvp: RSVP
    created: bool


def parse_status(value: str) -> RSVPStatus:
    try:
        return RSVPStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in RSVPStatus)
        raise ValidationError(f"Invalid RSVP status: {value!r} (expected one of {allowed})")


def _find(db: Session, user_id: str, event_id: uuid.UUID) -> RSVP | None:
    return db.query(RSVP).filter(RSVP.user_id == user_id, RSVP.event_id == event_id).first()


def upsert_rsvp(
    db: Session,
    registry: ConnectionRegistry,
    user_id: str,
    event_id: uuid.UUID,
    status: str,
) -> UpsertResult:
    """Create or update the caller's RSVP.

    Created vs updated is decided by whether a row already existed for the
    pair. If a concurrent request inserts first, the insert fails on the
    primary key and the call falls through to an update.
    """
    new_status = parse_status(status)

    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    if not event.approved:
        raise EventNotApproved()

    rsvp = _find(db, user_id, event_id)
    created = rsvp is None
    if created:
        rsvp = RSVP(user_id=user_id, event_id=event_id, status=new_status)
        db.add(rsvp)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            rsvp = _find(db, user_id, event_id)
            if rsvp is None:
                raise
            created = False

    if not created:
        rsvp.status = new_status
        rsvp.updated_at = datetime.now(timezone.utc)
        db.commit()

    db.refresh(rsvp)
    logger.info(
        "User %s RSVP %s '%s' to event %s",
        user_id, "created" if created else "updated", new_status.value, event_id,
    )

    payload = RSVPChange.model_validate(rsvp).model_dump(mode="json")
    registry.publish(BroadcastType.rsvp_created if created else BroadcastType.rsvp_updated, payload)
    return UpsertResult(rsvp=rsvp, created=created)


def list_for_event(db: Session, event_id: uuid.UUID) -> list[RSVP]:
    """RSVPs for one event, newest first, each with its user."""
    return (
        db.query(RSVP)
        .filter(RSVP.event_id == event_id)
        .order_by(RSVP.created_at.desc())
        .all()
    )


def list_for_user(db: Session, user_id: str) -> list[RSVP]:
    """The user's RSVPs, newest first, each with the full event and organizer."""
    return (
        db.query(RSVP)
        .options(joinedload(RSVP.event).joinedload(Event.organizer))
        .filter(RSVP.user_id == user_id)
        .order_by(RSVP.created_at.desc())
        .all()
    )


def delete_rsvp(db: Session, user_id: str, event_id: uuid.UUID) -> None:
    """Remove the caller's RSVP. Deletion is not broadcast."""
    rsvp = _find(db, user_id, event_id)
    if not rsvp:
        raise NotFound("RSVP not found")
    db.delete(rsvp)
    db.commit()
    logger.info("User %s removed RSVP for event %s", user_id, event_id)

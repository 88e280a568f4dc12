"""RSVP ORM model — one row per (user, event)."""
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.database import Base


class RSVPStatus(str, enum.Enum):
    yes = "YES"
    no = "NO"
    maybe = "MAYBE"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RSVP(Base):
    __tablename__ = "rsvps"

    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.event_id"), primary_key=True)
    status = Column(SAEnum(RSVPStatus), nullable=False)
    # Python-side timestamps keep sub-second ordering on SQLite.
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", lazy="joined")
    event = relationship("Event", back_populates="rsvps")

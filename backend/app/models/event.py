"""Event ORM model."""
import uuid
from sqlalchemy import Boolean, Column, String, Text, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Event(Base):
    __tablename__ = "events"

    event_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    location = Column(String(500), nullable=False)
    organizer_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    organizer = relationship("User", lazy="joined")
    # RSVPs are removed explicitly by event_service.delete_event, never by ORM cascade.
    rsvps = relationship("RSVP", back_populates="event", passive_deletes=True)

    @property
    def rsvp_count(self) -> int:
        return len(self.rsvps)

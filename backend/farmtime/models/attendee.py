"""Attendee ORM model — one RSVP per (event, email)."""
import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from farmtime.database import Base, utcnow


class RSVPStatus(str, enum.Enum):
    attending = "attending"
    maybe = "maybe"
    declined = "declined"


def email_key(email: str) -> str:
    return email.strip().lower()


class Attendee(Base):
    __tablename__ = "attendees"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    email_key = Column(String(320), nullable=False)
    status = Column(SAEnum(RSVPStatus, native_enum=False, length=20), nullable=False, default=RSVPStatus.attending)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    event = relationship("Event", back_populates="attendees")

    __table_args__ = (UniqueConstraint("event_id", "email_key", name="uq_attendees_event_email"),)

"""Event ORM model — aggregate root."""
import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from farmtime.database import Base, utcnow


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(500), nullable=False, default="")
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    created_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    attendees = relationship(
        "Attendee", back_populates="event", cascade="all, delete-orphan",
        order_by="Attendee.created_at",
    )
    meals = relationship("Meal", back_populates="event", cascade="all, delete-orphan")
    todos = relationship("Todo", back_populates="event", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_events_start_time", "start_time"),)

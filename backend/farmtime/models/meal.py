"""Meal, MealItem and MealSignup ORM models."""
import enum
import uuid
from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from farmtime.database import Base, utcnow


class MealType(str, enum.Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snacks = "snacks"
    other = "other"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Meal(Base):
    __tablename__ = "meals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    meal_type = Column(SAEnum(MealType, native_enum=False, length=20), nullable=False)
    meal_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    event = relationship("Event", back_populates="meals")
    items = relationship(
        "MealItem", back_populates="meal", cascade="all, delete-orphan",
        order_by="MealItem.name",
    )


class MealItem(Base):
    __tablename__ = "meal_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    meal_id = Column(String(36), ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    assigned_attendee_id = Column(String(36), ForeignKey("attendees.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    meal = relationship("Meal", back_populates="items")
    assigned_attendee = relationship("Attendee")
    signups = relationship(
        "MealSignup", back_populates="item", cascade="all, delete-orphan",
        order_by="MealSignup.created_at",
    )


class MealSignup(Base):
    __tablename__ = "meal_signups"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    meal_item_id = Column(String(36), ForeignKey("meal_items.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    item = relationship("MealItem", back_populates="signups")
    user = relationship("User")

    __table_args__ = (UniqueConstraint("meal_item_id", "user_id", name="uq_meal_signups_item_user"),)

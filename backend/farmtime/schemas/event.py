"""Pydantic schemas for Events and the composed event aggregate."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, field_validator

from farmtime.schemas.attendee import AttendeeOut
from farmtime.schemas.meal import MealWithItemsOut
from farmtime.schemas.todo import TodoOut


class EventCreate(BaseModel):
    title: str
    description: str = ""
    location: str = ""
    start_time: datetime
    end_time: datetime
    auto_create_meals: bool = False


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class EventOut(BaseModel):
    id: str
    title: str
    description: str
    location: str
    start_time: datetime
    end_time: datetime
    created_by_user_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def mark_utc(cls, value: datetime) -> datetime:
        # event times are stored as UTC; SQLite returns them without tzinfo
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class EventWithAll(EventOut):
    """One consistent snapshot of an event and everything it owns."""

    attendees: list[AttendeeOut] = []
    meals: list[MealWithItemsOut] = []
    todos: list[TodoOut] = []

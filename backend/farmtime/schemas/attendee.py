"""Pydantic schemas for Attendees / RSVPs."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class AttendeeCreate(BaseModel):
    name: str
    email: str
    status: str = "attending"


class AttendeeUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None


class RSVPPayload(BaseModel):
    status: str  # attending, maybe, declined


class AttendeeOut(BaseModel):
    id: str
    event_id: str
    name: str
    email: str
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

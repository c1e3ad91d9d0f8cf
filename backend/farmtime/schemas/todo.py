"""Pydantic schemas for Todos."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class TodoCreate(BaseModel):
    title: str
    description: str = ""
    assigned_attendee_id: Optional[str] = None


class TodoUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    assigned_attendee_id: Optional[str] = None  # "" clears the assignment


class TodoOut(BaseModel):
    id: str
    event_id: str
    title: str
    description: str
    completed: bool
    assigned_attendee_id: Optional[str] = None
    assigned_attendee_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

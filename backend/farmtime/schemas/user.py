"""Pydantic schemas for Users and the resolved request identity."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class Identity(BaseModel):
    """The acting principal as handed to the service layer."""

    id: str
    email: str
    name: str
    picture: str = ""
    is_admin: bool = False
    can_create_events: bool = False

    model_config = {"from_attributes": True}


class UserPermissionsUpdate(BaseModel):
    can_create_events: Optional[bool] = None


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    picture: str
    is_admin: bool
    can_create_events: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MeOut(BaseModel):
    user: Optional[UserOut] = None

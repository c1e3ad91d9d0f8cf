"""Pydantic schemas for Meals, MealItems and MealSignups."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel


class MealCreate(BaseModel):
    meal_type: str
    name: Optional[str] = None
    meal_date: Optional[date] = None
    notes: str = ""


class MealUpdate(BaseModel):
    name: Optional[str] = None
    meal_type: Optional[str] = None
    meal_date: Optional[date] = None
    notes: Optional[str] = None


class MealItemCreate(BaseModel):
    name: str
    description: str = ""
    assigned_attendee_id: Optional[str] = None


class MealItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    assigned_attendee_id: Optional[str] = None  # "" clears the assignment


class MealSignupCreate(BaseModel):
    notes: str = ""


class MealSignupOut(BaseModel):
    id: str
    meal_item_id: str
    user_id: str
    user_name: str
    user_email: str
    notes: str
    created_at: datetime


class MealItemOut(BaseModel):
    id: str
    meal_id: str
    name: str
    description: str
    assigned_attendee_id: Optional[str] = None
    assigned_attendee_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MealItemWithSignupsOut(MealItemOut):
    signups: list[MealSignupOut] = []


class MealOut(BaseModel):
    id: str
    event_id: str
    name: str
    meal_type: str
    meal_date: Optional[date] = None
    notes: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MealWithItemsOut(MealOut):
    items: list[MealItemWithSignupsOut] = []

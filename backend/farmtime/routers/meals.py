"""Meal, meal item and signup API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from farmtime.auth import require_identity
from farmtime.database import get_db
from farmtime.schemas.meal import (
    MealCreate,
    MealUpdate,
    MealWithItemsOut,
    MealItemCreate,
    MealItemUpdate,
    MealItemWithSignupsOut,
    MealSignupCreate,
    MealSignupOut,
)
from farmtime.schemas.user import Identity
from farmtime.services import meal_service
from farmtime.services.composition import compose_item, compose_meal, compose_signup

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{event_id}/meals", response_model=list[MealWithItemsOut])
def list_meals(event_id: str, db: Session = Depends(get_db)):
    return meal_service.list_meals(db, event_id)


@router.post("/{event_id}/meals", response_model=MealWithItemsOut, status_code=status.HTTP_201_CREATED)
def create_meal(event_id: str, payload: MealCreate, db: Session = Depends(get_db)):
    """Create a meal; name defaults to the meal type's label."""
    meal = meal_service.create_meal(
        db, event_id,
        meal_type=payload.meal_type,
        name=payload.name,
        meal_date=payload.meal_date,
        notes=payload.notes,
    )
    return compose_meal(meal)


@router.put("/{event_id}/meals/{meal_id}", response_model=MealWithItemsOut)
def update_meal(event_id: str, meal_id: str, payload: MealUpdate, db: Session = Depends(get_db)):
    meal = meal_service.update_meal(db, event_id, meal_id, payload.model_dump(exclude_unset=True))
    return compose_meal(meal)


@router.delete("/{event_id}/meals/{meal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_meal(event_id: str, meal_id: str, db: Session = Depends(get_db)):
    """Delete a meal along with its items and their signups."""
    meal_service.delete_meal(db, event_id, meal_id)


@router.post(
    "/{event_id}/meals/{meal_id}/items",
    response_model=MealItemWithSignupsOut,
    status_code=status.HTTP_201_CREATED,
)
def add_meal_item(event_id: str, meal_id: str, payload: MealItemCreate, db: Session = Depends(get_db)):
    meal_service.get_meal(db, event_id, meal_id)
    item = meal_service.add_meal_item(
        db, meal_id,
        name=payload.name,
        description=payload.description,
        assigned_attendee_id=payload.assigned_attendee_id,
    )
    return compose_item(item)


@router.put("/{event_id}/meals/{meal_id}/items/{item_id}", response_model=MealItemWithSignupsOut)
def update_meal_item(
    event_id: str,
    meal_id: str,
    item_id: str,
    payload: MealItemUpdate,
    db: Session = Depends(get_db),
):
    meal_service.get_meal(db, event_id, meal_id)
    item = meal_service.update_meal_item(db, meal_id, item_id, payload.model_dump(exclude_unset=True))
    return compose_item(item)


@router.delete("/{event_id}/meals/{meal_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_meal_item(event_id: str, meal_id: str, item_id: str, db: Session = Depends(get_db)):
    meal_service.get_meal(db, event_id, meal_id)
    meal_service.delete_meal_item(db, meal_id, item_id)


@router.post(
    "/{event_id}/meals/{meal_id}/items/{item_id}/signup",
    response_model=MealSignupOut,
    status_code=status.HTTP_201_CREATED,
)
def signup_for_item(
    event_id: str,
    meal_id: str,
    item_id: str,
    payload: Optional[MealSignupCreate] = Body(None),
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Claim an item for the caller. A second claim by the same user is a 409."""
    meal_service.get_meal(db, event_id, meal_id)
    meal_service.get_meal_item(db, meal_id, item_id)
    signup = meal_service.signup_for_item(db, item_id, actor, notes=payload.notes if payload else "")
    return compose_signup(signup)


@router.delete("/{event_id}/meals/{meal_id}/items/{item_id}/signup", status_code=status.HTTP_204_NO_CONTENT)
def remove_signup(
    event_id: str,
    meal_id: str,
    item_id: str,
    user_id: Optional[str] = Query(None, description="Defaults to the caller"),
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    meal_service.get_meal(db, event_id, meal_id)
    meal_service.get_meal_item(db, meal_id, item_id)
    meal_service.remove_signup(db, item_id, actor, user_id=user_id)

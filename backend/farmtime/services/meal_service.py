"""Meal, MealItem and MealSignup service.

Signups follow strict semantics: one signup per (item, user), enforced by the
``uq_meal_signups_item_user`` constraint. A second attempt, sequential or
concurrent, is rejected with ConflictError and leaves the first in place.
"""
import logging
from datetime import date
from typing import Any, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from farmtime.errors import (
    AuthenticationRequiredError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from farmtime.models.attendee import Attendee, RSVPStatus, email_key
from farmtime.models.meal import Meal, MealItem, MealSignup, MealType
from farmtime.schemas.meal import MealWithItemsOut
from farmtime.schemas.user import Identity
from farmtime.services.composition import compose_meal, sort_meals
from farmtime.services.attendee_service import validate_assignee
from farmtime.services.event_service import get_event_record

logger = logging.getLogger(__name__)

MEAL_FIELDS = ("name", "meal_type", "meal_date", "notes")
ITEM_FIELDS = ("name", "description", "assigned_attendee_id")


def parse_meal_type(meal_type: Optional[str]) -> MealType:
    try:
        return MealType((meal_type or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid meal type: {meal_type}")


def parse_meal_date(value: Union[date, str, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("meal_date must be a YYYY-MM-DD date")


def _check_fields(updates: dict[str, Any], allowed: tuple[str, ...], kind: str) -> None:
    unknown = set(updates) - set(allowed)
    if unknown:
        raise ValidationError(f"Unknown {kind} fields: {', '.join(sorted(unknown))}")


# ── Meals ──────────────────────────────────────────────────────────


def create_meal(
    db: Session,
    event_id: str,
    meal_type: str,
    name: Optional[str] = None,
    meal_date: Union[date, str, None] = None,
    notes: Optional[str] = None,
) -> Meal:
    """Create a meal; a blank name falls back to the meal type's label."""
    get_event_record(db, event_id)
    kind = parse_meal_type(meal_type)
    meal = Meal(
        event_id=event_id,
        name=name.strip() if name and name.strip() else kind.label,
        meal_type=kind,
        meal_date=parse_meal_date(meal_date),
        notes=notes or "",
    )
    db.add(meal)
    db.commit()
    db.refresh(meal)
    logger.info("Created meal '%s' (%s) for event %s", meal.name, meal.id, event_id)
    return meal


def get_meal(db: Session, event_id: str, meal_id: str) -> Meal:
    meal = db.query(Meal).filter(Meal.id == meal_id, Meal.event_id == event_id).first()
    if not meal:
        raise NotFoundError("Meal not found")
    return meal


def list_meals(db: Session, event_id: str) -> list[MealWithItemsOut]:
    """Meals of an event with their items and signups."""
    get_event_record(db, event_id)
    meals = (
        db.query(Meal)
        .populate_existing()
        .options(
            selectinload(Meal.items).selectinload(MealItem.signups).joinedload(MealSignup.user),
            selectinload(Meal.items).joinedload(MealItem.assigned_attendee),
        )
        .filter(Meal.event_id == event_id)
        .all()
    )
    return [compose_meal(m) for m in sort_meals(meals)]


def update_meal(db: Session, event_id: str, meal_id: str, updates: dict[str, Any]) -> Meal:
    meal = get_meal(db, event_id, meal_id)
    _check_fields(updates, MEAL_FIELDS, "meal")

    if "meal_type" in updates:
        meal.meal_type = parse_meal_type(updates["meal_type"])
    if "name" in updates:
        name = updates["name"]
        meal.name = name.strip() if name and name.strip() else meal.meal_type.label
    if "meal_date" in updates:
        meal.meal_date = parse_meal_date(updates["meal_date"])
    if "notes" in updates:
        meal.notes = updates["notes"] or ""

    db.commit()
    db.refresh(meal)
    logger.info("Updated meal %s on event %s", meal_id, event_id)
    return meal


def delete_meal(db: Session, event_id: str, meal_id: str) -> None:
    """Remove the meal with its items and their signups in one transaction."""
    meal = get_meal(db, event_id, meal_id)
    db.delete(meal)
    db.commit()
    logger.info("Deleted meal %s from event %s", meal_id, event_id)


# ── Items ──────────────────────────────────────────────────────────


def _find_meal(db: Session, meal_id: str) -> Meal:
    meal = db.query(Meal).filter(Meal.id == meal_id).first()
    if not meal:
        raise NotFoundError("Meal not found")
    return meal


def get_meal_item(db: Session, meal_id: str, item_id: str) -> MealItem:
    item = db.query(MealItem).filter(MealItem.id == item_id, MealItem.meal_id == meal_id).first()
    if not item:
        raise NotFoundError("Meal item not found")
    return item


def add_meal_item(
    db: Session,
    meal_id: str,
    name: str,
    description: Optional[str] = None,
    assigned_attendee_id: Optional[str] = None,
) -> MealItem:
    meal = _find_meal(db, meal_id)
    if name is None or not name.strip():
        raise ValidationError("Name is required")
    item = MealItem(
        meal_id=meal.id,
        name=name.strip(),
        description=description or "",
        assigned_attendee_id=validate_assignee(db, meal.event_id, assigned_attendee_id),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Added item '%s' (%s) to meal %s", item.name, item.id, meal_id)
    return item


def update_meal_item(db: Session, meal_id: str, item_id: str, updates: dict[str, Any]) -> MealItem:
    """Partial update; an empty assigned_attendee_id clears the assignment."""
    item = get_meal_item(db, meal_id, item_id)
    _check_fields(updates, ITEM_FIELDS, "meal item")

    if "name" in updates:
        name = updates["name"]
        if name is None or not name.strip():
            raise ValidationError("Name is required")
        item.name = name.strip()
    if "description" in updates:
        item.description = updates["description"] or ""
    if "assigned_attendee_id" in updates:
        item.assigned_attendee_id = validate_assignee(db, item.meal.event_id, updates["assigned_attendee_id"])

    db.commit()
    db.refresh(item)
    logger.info("Updated meal item %s", item_id)
    return item


def delete_meal_item(db: Session, meal_id: str, item_id: str) -> None:
    item = get_meal_item(db, meal_id, item_id)
    db.delete(item)
    db.commit()
    logger.info("Deleted meal item %s from meal %s", item_id, meal_id)


# ── Signups ────────────────────────────────────────────────────────


def _find_item(db: Session, item_id: str) -> MealItem:
    item = db.query(MealItem).filter(MealItem.id == item_id).first()
    if not item:
        raise NotFoundError("Meal item not found")
    return item


def get_signup(db: Session, item_id: str, user_id: str) -> Optional[MealSignup]:
    return (
        db.query(MealSignup)
        .filter(MealSignup.meal_item_id == item_id, MealSignup.user_id == user_id)
        .first()
    )


def _ensure_attending(db: Session, event_id: str, actor: Identity) -> None:
    """Add the actor as an attending Attendee unless their email already responded."""
    key = email_key(actor.email)
    exists = db.query(Attendee).filter(Attendee.event_id == event_id, Attendee.email_key == key).first()
    if exists:
        return
    db.add(Attendee(
        event_id=event_id,
        name=actor.name,
        email=actor.email,
        email_key=key,
        status=RSVPStatus.attending,
    ))
    try:
        db.commit()
        logger.info("Auto-added %s as attendee of event %s after signup", actor.email, event_id)
    except IntegrityError:
        # someone recorded this email in the meantime, which is the state we wanted
        db.rollback()


def signup_for_item(
    db: Session,
    item_id: str,
    actor: Optional[Identity],
    notes: Optional[str] = None,
) -> MealSignup:
    """Claim an item for the actor; at most one claim per (item, user)."""
    if actor is None:
        raise AuthenticationRequiredError()
    item = _find_item(db, item_id)
    event_id = item.meal.event_id

    if get_signup(db, item_id, actor.id) is not None:
        logger.warning("Rejected duplicate signup by user %s for item %s", actor.id, item_id)
        raise ConflictError("You have already signed up for this item")

    signup = MealSignup(meal_item_id=item_id, user_id=actor.id, notes=notes or "")
    db.add(signup)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent duplicate signup by user %s for item %s", actor.id, item_id)
        raise ConflictError("You have already signed up for this item")
    db.refresh(signup)
    logger.info("User %s signed up for item %s", actor.id, item_id)

    _ensure_attending(db, event_id, actor)
    return signup


def remove_signup(
    db: Session,
    item_id: str,
    actor: Optional[Identity],
    user_id: Optional[str] = None,
) -> None:
    """Withdraw a signup; only the user who made it may remove it."""
    if actor is None:
        raise AuthenticationRequiredError()
    _find_item(db, item_id)
    target = user_id or actor.id
    if target != actor.id:
        raise PermissionDeniedError("You can only remove your own signup")

    signup = get_signup(db, item_id, target)
    if signup is None:
        raise NotFoundError("Signup not found")
    db.delete(signup)
    db.commit()
    logger.info("User %s removed signup for item %s", actor.id, item_id)

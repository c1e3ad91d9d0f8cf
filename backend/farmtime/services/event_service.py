"""Core event service — lifecycle of the event aggregate root.

Responsibilities:
- Permission gate: create needs the create-events grant, update/delete need
  creator or admin
- Field validation: non-blank title, parseable times, end after start
- Atomic cascade delete of attendees, meals, items, signups and todos
- Composition of the full EventWithAll read view, always from storage
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

import pytz
from sqlalchemy.orm import Session, selectinload

from farmtime.config import settings
from farmtime.errors import NotFoundError, ValidationError
from farmtime.models.event import Event
from farmtime.models.meal import Meal, MealItem, MealSignup
from farmtime.models.todo import Todo
from farmtime.permissions import can_create_event, can_modify_event, ensure
from farmtime.schemas.event import EventWithAll
from farmtime.schemas.user import Identity
from farmtime.services.composition import compose_event
from farmtime.services.meal_planner import plan_meals

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "location", "start_time", "end_time")

TimeInput = Union[datetime, str]


def to_utc(value: datetime) -> datetime:
    """Normalize to aware UTC; naive values are wall-clock time in EVENT_TIMEZONE.

    Everything is stored as UTC so SQLite, which keeps no offset, still holds
    the right instant.
    """
    if value.tzinfo is None:
        value = pytz.timezone(settings.EVENT_TIMEZONE).localize(value)
    return value.astimezone(timezone.utc)


def parse_time(value: Optional[TimeInput], field: str) -> datetime:
    """Accept a datetime or an ISO-8601 string (a trailing Z means UTC), returned as aware UTC."""
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            return to_utc(parsed)
    raise ValidationError(f"{field} must be a valid ISO-8601 date-time")


def _as_utc_naive(value: datetime) -> datetime:
    # SQLite hands back the stored UTC values without tzinfo
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _check_window(start: datetime, end: datetime) -> None:
    if _as_utc_naive(end) <= _as_utc_naive(start):
        raise ValidationError("end_time must be after start_time")


def _clean_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Title is required")
    return title.strip()


def get_event_record(db: Session, event_id: str) -> Event:
    """Fetch the bare Event row or raise NotFoundError."""
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise NotFoundError("Event not found")
    return event


def create_event(
    db: Session,
    title: str,
    description: str,
    location: str,
    start: TimeInput,
    end: TimeInput,
    creator: Optional[Identity],
    auto_create_meals: bool = False,
) -> Event:
    """Create an event owned by ``creator``, optionally pre-planning its meals."""
    ensure(can_create_event(creator), "You do not have permission to create events")
    clean_title = _clean_title(title)
    start_time = parse_time(start, "start_time")
    end_time = parse_time(end, "end_time")
    _check_window(start_time, end_time)

    event = Event(
        title=clean_title,
        description=description or "",
        location=location or "",
        start_time=start_time,
        end_time=end_time,
        created_by_user_id=creator.id,
    )
    db.add(event)

    if auto_create_meals:
        for planned in plan_meals(start_time, end_time, settings.EVENT_TIMEZONE):
            event.meals.append(Meal(
                name=planned.name,
                meal_type=planned.meal_type,
                meal_date=planned.meal_date,
                notes="",
            ))

    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by user %s", clean_title, event.id, creator.id)
    return event


def update_event(
    db: Session,
    event_id: str,
    actor: Optional[Identity],
    updates: dict[str, Any],
) -> Event:
    """Partial update; fields absent from ``updates`` are left alone."""
    event = get_event_record(db, event_id)
    ensure(can_modify_event(actor, event), "Only the event creator or an admin may modify this event")

    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")

    changes: dict[str, Any] = {}
    if "title" in updates:
        changes["title"] = _clean_title(updates["title"])
    for field in ("description", "location"):
        if field in updates:
            changes[field] = updates[field] or ""
    for field in ("start_time", "end_time"):
        if field in updates:
            changes[field] = parse_time(updates[field], field)

    _check_window(
        changes.get("start_time", event.start_time),
        changes.get("end_time", event.end_time),
    )

    for field, value in changes.items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(changes)) or "no changes")
    return event


def delete_event(db: Session, event_id: str, actor: Optional[Identity]) -> None:
    """Remove the event and every descendant in one transaction."""
    event = get_event_record(db, event_id)
    ensure(can_modify_event(actor, event), "Only the event creator or an admin may delete this event")
    db.delete(event)
    db.commit()
    logger.info("Deleted event %s and all of its attendees, meals and todos", event_id)


def get_event(db: Session, event_id: str) -> EventWithAll:
    """Compose the EventWithAll snapshot fresh from storage."""
    event = (
        db.query(Event)
        .populate_existing()
        .options(
            selectinload(Event.attendees),
            selectinload(Event.meals)
            .selectinload(Meal.items)
            .selectinload(MealItem.signups)
            .joinedload(MealSignup.user),
            selectinload(Event.meals)
            .selectinload(Meal.items)
            .joinedload(MealItem.assigned_attendee),
            selectinload(Event.todos).joinedload(Todo.assigned_attendee),
        )
        .filter(Event.id == event_id)
        .first()
    )
    if not event:
        raise NotFoundError("Event not found")
    return compose_event(event)


def list_events(db: Session) -> list[Event]:
    """All events, earliest start first."""
    return db.query(Event).order_by(Event.start_time, Event.created_at).all()

"""Attendee / RSVP service.

One Attendee per (event, case-insensitive email), backed by a unique
constraint on ``email_key``. Status changes are free among attending, maybe
and declined.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from farmtime.errors import AuthenticationRequiredError, ConflictError, NotFoundError, ValidationError
from farmtime.models.attendee import Attendee, RSVPStatus, email_key
from farmtime.models.event import Event
from farmtime.models.meal import MealItem
from farmtime.models.todo import Todo
from farmtime.permissions import can_modify_event, ensure
from farmtime.schemas.user import Identity
from farmtime.services.event_service import get_event_record

logger = logging.getLogger(__name__)


def parse_status(status: Optional[str]) -> RSVPStatus:
    try:
        return RSVPStatus((status or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid RSVP status: {status}")


def _required(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required")
    return value.strip()


def _email_taken(db: Session, event_id: str, email: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(Attendee).filter(Attendee.event_id == event_id, Attendee.email_key == email_key(email))
    if exclude_id:
        query = query.filter(Attendee.id != exclude_id)
    return query.first() is not None


def _commit_or_conflict(db: Session, message: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(message)


def _ensure_can_manage(actor: Optional[Identity], event: Event, attendee: Attendee) -> None:
    is_self = actor is not None and email_key(actor.email) == attendee.email_key
    ensure(
        is_self or can_modify_event(actor, event),
        "Only the attendee, the event creator or an admin may change this RSVP",
    )


def add_attendee(
    db: Session,
    event_id: str,
    name: str,
    email: str,
    status: str = RSVPStatus.attending.value,
) -> Attendee:
    get_event_record(db, event_id)
    clean_name = _required(name, "Name")
    clean_email = _required(email, "Email")
    rsvp = parse_status(status)
    if _email_taken(db, event_id, clean_email):
        raise ConflictError(f"{clean_email} has already responded to this event")

    attendee = Attendee(
        event_id=event_id,
        name=clean_name,
        email=clean_email,
        email_key=email_key(clean_email),
        status=rsvp,
    )
    db.add(attendee)
    _commit_or_conflict(db, f"{clean_email} has already responded to this event")
    db.refresh(attendee)
    logger.info("Added attendee %s (%s) to event %s as %s", attendee.id, clean_email, event_id, rsvp.value)
    return attendee


def list_attendees(db: Session, event_id: str) -> list[Attendee]:
    get_event_record(db, event_id)
    return (
        db.query(Attendee)
        .filter(Attendee.event_id == event_id)
        .order_by(Attendee.created_at)
        .all()
    )


def get_attendee(db: Session, event_id: str, attendee_id: str) -> Attendee:
    attendee = (
        db.query(Attendee)
        .filter(Attendee.id == attendee_id, Attendee.event_id == event_id)
        .first()
    )
    if not attendee:
        raise NotFoundError("Attendee not found")
    return attendee


def update_attendee(
    db: Session,
    event_id: str,
    attendee_id: str,
    actor: Optional[Identity],
    name: Optional[str] = None,
    email: Optional[str] = None,
    status: Optional[str] = None,
) -> Attendee:
    event = get_event_record(db, event_id)
    attendee = get_attendee(db, event_id, attendee_id)
    _ensure_can_manage(actor, event, attendee)

    if name is not None:
        attendee.name = _required(name, "Name")
    if email is not None:
        clean_email = _required(email, "Email")
        if _email_taken(db, event_id, clean_email, exclude_id=attendee_id):
            raise ConflictError(f"{clean_email} has already responded to this event")
        attendee.email = clean_email
        attendee.email_key = email_key(clean_email)
    if status is not None:
        attendee.status = parse_status(status)

    _commit_or_conflict(db, "Another attendee already uses that email")
    db.refresh(attendee)
    logger.info("Updated attendee %s on event %s (status %s)", attendee_id, event_id, attendee.status.value)
    return attendee


def update_attendee_status(
    db: Session, event_id: str, attendee_id: str, actor: Optional[Identity], status: str,
) -> Attendee:
    return update_attendee(db, event_id, attendee_id, actor, status=status)


def remove_attendee(db: Session, event_id: str, attendee_id: str, actor: Optional[Identity]) -> None:
    """Delete the attendee and clear any item or todo assignments pointing at it."""
    event = get_event_record(db, event_id)
    attendee = get_attendee(db, event_id, attendee_id)
    _ensure_can_manage(actor, event, attendee)

    db.query(MealItem).filter(MealItem.assigned_attendee_id == attendee_id).update(
        {MealItem.assigned_attendee_id: None}, synchronize_session=False,
    )
    db.query(Todo).filter(Todo.assigned_attendee_id == attendee_id).update(
        {Todo.assigned_attendee_id: None}, synchronize_session=False,
    )
    db.delete(attendee)
    db.commit()
    logger.info("Removed attendee %s from event %s", attendee_id, event_id)


def find_my_rsvp(db: Session, event_id: str, actor: Optional[Identity]) -> Optional[Attendee]:
    """The actor's own Attendee row, matched by case-insensitive email."""
    if actor is None:
        return None
    get_event_record(db, event_id)
    return (
        db.query(Attendee)
        .filter(Attendee.event_id == event_id, Attendee.email_key == email_key(actor.email))
        .first()
    )


def set_my_rsvp(db: Session, event_id: str, actor: Optional[Identity], status: str) -> Attendee:
    """Create or update the actor's own RSVP."""
    if actor is None:
        raise AuthenticationRequiredError()
    rsvp = parse_status(status)
    attendee = find_my_rsvp(db, event_id, actor)
    if attendee is None:
        attendee = Attendee(
            event_id=event_id,
            name=actor.name,
            email=actor.email,
            email_key=email_key(actor.email),
            status=rsvp,
        )
        db.add(attendee)
        try:
            db.commit()
        except IntegrityError:
            # a concurrent RSVP by the same person won; fall through to update it
            db.rollback()
            attendee = find_my_rsvp(db, event_id, actor)
            if attendee is None:
                raise
            attendee.status = rsvp
            db.commit()
    else:
        attendee.status = rsvp
        db.commit()
    db.refresh(attendee)
    logger.info("User %s RSVP'd '%s' to event %s", actor.id, rsvp.value, event_id)
    return attendee


def validate_assignee(db: Session, event_id: str, attendee_id: Optional[str]) -> Optional[str]:
    """Empty means unassigned; anything else must be an attendee of this event."""
    if not attendee_id:
        return None
    attendee = (
        db.query(Attendee)
        .filter(Attendee.id == attendee_id, Attendee.event_id == event_id)
        .first()
    )
    if not attendee:
        raise ValidationError("Assigned attendee is not an attendee of this event")
    return attendee.id

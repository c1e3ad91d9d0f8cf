"""Attendee / RSVP API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from farmtime.auth import require_identity
from farmtime.database import get_db
from farmtime.schemas.attendee import AttendeeCreate, AttendeeUpdate, AttendeeOut, RSVPPayload
from farmtime.schemas.user import Identity
from farmtime.services import attendee_service
from farmtime.services.composition import compose_attendee

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{event_id}/attendees", response_model=list[AttendeeOut])
def list_attendees(event_id: str, db: Session = Depends(get_db)):
    return [compose_attendee(a) for a in attendee_service.list_attendees(db, event_id)]


@router.post("/{event_id}/attendees", response_model=AttendeeOut, status_code=status.HTTP_201_CREATED)
def add_attendee(event_id: str, payload: AttendeeCreate, db: Session = Depends(get_db)):
    """Add someone to the guest list with an initial RSVP status."""
    attendee = attendee_service.add_attendee(
        db, event_id, name=payload.name, email=payload.email, status=payload.status,
    )
    return compose_attendee(attendee)


@router.put("/{event_id}/attendees/{attendee_id}", response_model=AttendeeOut)
def update_attendee(
    event_id: str,
    attendee_id: str,
    payload: AttendeeUpdate,
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Change an attendee's name, email or status (self, creator or admin)."""
    attendee = attendee_service.update_attendee(
        db, event_id, attendee_id, actor,
        name=payload.name, email=payload.email, status=payload.status,
    )
    return compose_attendee(attendee)


@router.delete("/{event_id}/attendees/{attendee_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_attendee(
    event_id: str,
    attendee_id: str,
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    attendee_service.remove_attendee(db, event_id, attendee_id, actor)


@router.get("/{event_id}/rsvp", response_model=Optional[AttendeeOut])
def get_my_rsvp(
    event_id: str,
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """The caller's own RSVP, or null if they have not responded."""
    attendee = attendee_service.find_my_rsvp(db, event_id, actor)
    return compose_attendee(attendee) if attendee else None


@router.put("/{event_id}/rsvp", response_model=AttendeeOut)
def set_my_rsvp(
    event_id: str,
    payload: RSVPPayload,
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Set or update the caller's own RSVP status."""
    return compose_attendee(attendee_service.set_my_rsvp(db, event_id, actor, payload.status))

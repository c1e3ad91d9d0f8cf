"""Event API routes — delegates to event_service for invariant enforcement."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from farmtime.auth import require_identity
from farmtime.database import get_db
from farmtime.schemas.event import EventCreate, EventUpdate, EventOut, EventWithAll
from farmtime.schemas.user import Identity
from farmtime.services import event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Create a new event owned by the caller."""
    return event_service.create_event(
        db=db,
        title=payload.title,
        description=payload.description,
        location=payload.location,
        start=payload.start_time,
        end=payload.end_time,
        creator=actor,
        auto_create_meals=payload.auto_create_meals,
    )


@router.get("/", response_model=list[EventOut])
def list_events(db: Session = Depends(get_db)):
    """List all events, earliest start first."""
    return event_service.list_events(db)


@router.get("/{event_id}", response_model=EventWithAll)
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Fetch an event with attendees, meals (items and signups) and todos."""
    return event_service.get_event(db, event_id)


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Update an event (creator or admin only, partial)."""
    updates = payload.model_dump(exclude_unset=True)
    return event_service.update_event(db=db, event_id=event_id, actor=actor, updates=updates)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    actor: Identity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    """Delete an event and everything it owns (creator or admin only)."""
    event_service.delete_event(db=db, event_id=event_id, actor=actor)

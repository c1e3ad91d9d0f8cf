"""Permission gate — flat boolean checks on an already-resolved identity."""
from typing import Optional

from farmtime.errors import PermissionDeniedError
from farmtime.models.event import Event
from farmtime.schemas.user import Identity


def can_create_event(actor: Optional[Identity]) -> bool:
    return actor is not None and (actor.is_admin or actor.can_create_events)


def can_modify_event(actor: Optional[Identity], event: Event) -> bool:
    if actor is None:
        return False
    return actor.is_admin or (event.created_by_user_id is not None and event.created_by_user_id == actor.id)


def ensure(allowed: bool, detail: str) -> None:
    """Raise PermissionDeniedError unless the gate said yes."""
    if not allowed:
        raise PermissionDeniedError(detail)

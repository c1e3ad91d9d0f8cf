"""Todo service — shared tasks on an event."""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session, joinedload

from farmtime.errors import NotFoundError, ValidationError
from farmtime.models.todo import Todo
from farmtime.services.composition import sort_todos
from farmtime.services.attendee_service import validate_assignee
from farmtime.services.event_service import get_event_record

logger = logging.getLogger(__name__)

TODO_FIELDS = ("title", "description", "completed", "assigned_attendee_id")


def _clean_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Title is required")
    return title.strip()


def create_todo(
    db: Session,
    event_id: str,
    title: str,
    description: Optional[str] = None,
    assigned_attendee_id: Optional[str] = None,
) -> Todo:
    get_event_record(db, event_id)
    todo = Todo(
        event_id=event_id,
        title=_clean_title(title),
        description=description or "",
        completed=False,
        assigned_attendee_id=validate_assignee(db, event_id, assigned_attendee_id),
    )
    db.add(todo)
    db.commit()
    db.refresh(todo)
    logger.info("Created todo '%s' (%s) for event %s", todo.title, todo.id, event_id)
    return todo


def list_todos(db: Session, event_id: str) -> list[Todo]:
    """Open todos first, oldest first within each group."""
    get_event_record(db, event_id)
    todos = (
        db.query(Todo)
        .options(joinedload(Todo.assigned_attendee))
        .filter(Todo.event_id == event_id)
        .all()
    )
    return sort_todos(todos)


def get_todo(db: Session, todo_id: str) -> Todo:
    todo = db.query(Todo).filter(Todo.id == todo_id).first()
    if not todo:
        raise NotFoundError("Todo not found")
    return todo


def update_todo(db: Session, todo_id: str, updates: dict[str, Any]) -> Todo:
    """Partial update; keys missing from ``updates`` keep their current value.

    ``completed`` can be toggled on its own. An empty ``assigned_attendee_id``
    clears the assignment.
    """
    todo = get_todo(db, todo_id)
    unknown = set(updates) - set(TODO_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown todo fields: {', '.join(sorted(unknown))}")

    if "title" in updates:
        todo.title = _clean_title(updates["title"])
    if "description" in updates:
        todo.description = updates["description"] or ""
    if "completed" in updates:
        if not isinstance(updates["completed"], bool):
            raise ValidationError("completed must be true or false")
        todo.completed = updates["completed"]
    if "assigned_attendee_id" in updates:
        todo.assigned_attendee_id = validate_assignee(db, todo.event_id, updates["assigned_attendee_id"])

    db.commit()
    db.refresh(todo)
    logger.info("Updated todo %s (%s)", todo_id, ", ".join(sorted(updates)) or "no changes")
    return todo


def delete_todo(db: Session, todo_id: str) -> None:
    todo = get_todo(db, todo_id)
    db.delete(todo)
    db.commit()
    logger.info("Deleted todo %s", todo_id)

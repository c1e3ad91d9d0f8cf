"""Todo API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from farmtime.database import get_db
from farmtime.errors import NotFoundError
from farmtime.schemas.todo import TodoCreate, TodoUpdate, TodoOut
from farmtime.services import todo_service
from farmtime.services.composition import compose_todo

logger = logging.getLogger(__name__)
router = APIRouter()


def _todo_in_event(db: Session, event_id: str, todo_id: str):
    todo = todo_service.get_todo(db, todo_id)
    if todo.event_id != event_id:
        raise NotFoundError("Todo not found")
    return todo


@router.get("/{event_id}/todos", response_model=list[TodoOut])
def list_todos(event_id: str, db: Session = Depends(get_db)):
    return [compose_todo(t) for t in todo_service.list_todos(db, event_id)]


@router.post("/{event_id}/todos", response_model=TodoOut, status_code=status.HTTP_201_CREATED)
def create_todo(event_id: str, payload: TodoCreate, db: Session = Depends(get_db)):
    todo = todo_service.create_todo(
        db, event_id,
        title=payload.title,
        description=payload.description,
        assigned_attendee_id=payload.assigned_attendee_id,
    )
    return compose_todo(todo)


@router.put("/{event_id}/todos/{todo_id}", response_model=TodoOut)
def update_todo(event_id: str, todo_id: str, payload: TodoUpdate, db: Session = Depends(get_db)):
    """Partial update — only the fields sent are changed."""
    _todo_in_event(db, event_id, todo_id)
    todo = todo_service.update_todo(db, todo_id, payload.model_dump(exclude_unset=True))
    return compose_todo(todo)


@router.delete("/{event_id}/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_todo(event_id: str, todo_id: str, db: Session = Depends(get_db)):
    _todo_in_event(db, event_id, todo_id)
    todo_service.delete_todo(db, todo_id)

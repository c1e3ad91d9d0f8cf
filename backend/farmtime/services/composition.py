"""Builds read views from ORM rows.

Denormalized fields (assignee names, signup user name/email) are joined here
from the current parent rows, never stored. A reference that no longer
resolves reads as unassigned.
"""
from datetime import date, datetime
from typing import Optional

from farmtime.models.attendee import Attendee
from farmtime.models.event import Event
from farmtime.models.meal import Meal, MealItem, MealSignup
from farmtime.models.todo import Todo
from farmtime.schemas.attendee import AttendeeOut
from farmtime.schemas.event import EventWithAll
from farmtime.schemas.meal import MealItemWithSignupsOut, MealSignupOut, MealWithItemsOut
from farmtime.schemas.todo import TodoOut


def _assignee_name(attendee: Optional[Attendee]) -> Optional[str]:
    return attendee.name if attendee is not None else None


def compose_attendee(attendee: Attendee) -> AttendeeOut:
    return AttendeeOut(
        id=attendee.id,
        event_id=attendee.event_id,
        name=attendee.name,
        email=attendee.email,
        status=attendee.status.value,
        created_at=attendee.created_at,
        updated_at=attendee.updated_at,
    )


def compose_signup(signup: MealSignup) -> MealSignupOut:
    user = signup.user
    return MealSignupOut(
        id=signup.id,
        meal_item_id=signup.meal_item_id,
        user_id=signup.user_id,
        user_name=user.name if user is not None else "",
        user_email=user.email if user is not None else "",
        notes=signup.notes or "",
        created_at=signup.created_at,
    )


def compose_item(item: MealItem) -> MealItemWithSignupsOut:
    return MealItemWithSignupsOut(
        id=item.id,
        meal_id=item.meal_id,
        name=item.name,
        description=item.description or "",
        assigned_attendee_id=item.assigned_attendee_id,
        assigned_attendee_name=_assignee_name(item.assigned_attendee),
        created_at=item.created_at,
        updated_at=item.updated_at,
        signups=[compose_signup(s) for s in item.signups],
    )


def compose_meal(meal: Meal) -> MealWithItemsOut:
    return MealWithItemsOut(
        id=meal.id,
        event_id=meal.event_id,
        name=meal.name,
        meal_type=meal.meal_type.value,
        meal_date=meal.meal_date,
        notes=meal.notes or "",
        created_at=meal.created_at,
        updated_at=meal.updated_at,
        items=[compose_item(i) for i in sorted(meal.items, key=lambda i: (i.name, i.created_at))],
    )


def compose_todo(todo: Todo) -> TodoOut:
    return TodoOut(
        id=todo.id,
        event_id=todo.event_id,
        title=todo.title,
        description=todo.description or "",
        completed=todo.completed,
        assigned_attendee_id=todo.assigned_attendee_id,
        assigned_attendee_name=_assignee_name(todo.assigned_attendee),
        created_at=todo.created_at,
        updated_at=todo.updated_at,
    )


def sort_meals(meals: list[Meal]) -> list[Meal]:
    """Dated meals first by date, undated last, ties by creation."""
    return sorted(
        meals,
        key=lambda m: (m.meal_date is None, m.meal_date or date.min, m.created_at or datetime.min),
    )


def sort_todos(todos: list[Todo]) -> list[Todo]:
    """Open todos first, then by creation."""
    return sorted(todos, key=lambda t: (t.completed, t.created_at or datetime.min))


def compose_event(event: Event) -> EventWithAll:
    return EventWithAll(
        id=event.id,
        title=event.title,
        description=event.description or "",
        location=event.location or "",
        start_time=event.start_time,
        end_time=event.end_time,
        created_by_user_id=event.created_by_user_id,
        created_at=event.created_at,
        updated_at=event.updated_at,
        attendees=[compose_attendee(a) for a in event.attendees],
        meals=[compose_meal(m) for m in sort_meals(event.meals)],
        todos=[compose_todo(t) for t in sort_todos(event.todos)],
    )

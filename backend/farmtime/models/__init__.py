"""ORM models — importing this package registers every table on Base.metadata."""
from farmtime.models.user import User, UserSession
from farmtime.models.event import Event
from farmtime.models.attendee import Attendee, RSVPStatus
from farmtime.models.meal import Meal, MealItem, MealSignup, MealType
from farmtime.models.todo import Todo

__all__ = [
    "User",
    "UserSession",
    "Event",
    "Attendee",
    "RSVPStatus",
    "Meal",
    "MealItem",
    "MealSignup",
    "MealType",
    "Todo",
]

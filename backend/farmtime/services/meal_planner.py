"""Meal planner — decides which lunches and dinners an event window covers.

Times are judged on the wall clock of ``settings.EVENT_TIMEZONE``: aware
datetimes are converted into that zone, naive ones are taken as already local.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

import pytz

from farmtime.models.meal import MealType

logger = logging.getLogger(__name__)

LUNCH_LATEST_START_HOUR = 11
LUNCH_EARLIEST_END_HOUR = 12
DINNER_EARLIEST_END_HOUR = 20


@dataclass(frozen=True)
class PlannedMeal:
    name: str
    meal_type: MealType
    meal_date: date


def _to_local(value: datetime, tz) -> datetime:
    if value.tzinfo is None:
        return value
    return tz.normalize(value.astimezone(tz))


def plan_meals(start: datetime, end: datetime, tz_name: str = "UTC") -> list[PlannedMeal]:
    """Return the lunches and dinners for every day of the window, in order."""
    tz = pytz.timezone(tz_name)
    local_start = _to_local(start, tz)
    local_end = _to_local(end, tz)
    first_day = local_start.date()
    last_day = local_end.date()
    multi_day = first_day != last_day

    planned: list[PlannedMeal] = []
    day = first_day
    while day <= last_day:
        if day == first_day:
            lunch = local_start.hour <= LUNCH_LATEST_START_HOUR
        elif day == last_day:
            lunch = local_end.hour >= LUNCH_EARLIEST_END_HOUR
        else:
            lunch = True

        if day == last_day:
            dinner = local_end.hour >= DINNER_EARLIEST_END_HOUR
        else:
            dinner = True

        prefix = f"{day.strftime('%A')} " if multi_day else ""
        if lunch:
            planned.append(PlannedMeal(f"{prefix}Lunch", MealType.lunch, day))
        if dinner:
            planned.append(PlannedMeal(f"{prefix}Dinner", MealType.dinner, day))
        day += timedelta(days=1)

    logger.debug("Planned %d meals for window %s to %s (%s)", len(planned), start, end, tz_name)
    return planned

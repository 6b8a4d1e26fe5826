"""Fit-Track data models."""

import datetime
from typing import Sequence

from pydantic import BaseModel

from exceptions import MalformedRecord

NO_CATEGORY = "None"


class WorkoutCategory(BaseModel):
    """A named workout category offered when logging a routine."""
    id: int
    name: str


class RoutineRecord(BaseModel):
    """One logged day: workout category, minutes trained and the meal eaten."""
    id: int
    date: datetime.date
    category: str
    duration: int
    meal: str

    @classmethod
    def from_row(cls, row: Sequence) -> "RoutineRecord":
        """Build a record from ``(id, normalized_date, category, duration, meal)``.

        ``normalized_date`` is the calendar day of the stored date, or ``None``
        when the store could not read one.
        """
        rid, day, category, duration, meal = row[:5]
        if day is None:
            raise MalformedRecord("unparsable date", rid)
        try:
            day = datetime.date.fromisoformat(day)
        except ValueError:
            raise MalformedRecord(f"unparsable date: {day!r}", rid)
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise MalformedRecord(f"duration is not an integer: {duration!r}", rid)
        if duration < 0:
            raise MalformedRecord(f"negative duration: {duration}", rid)
        return cls(
            id=rid,
            date=day,
            category=category or "",
            duration=duration,
            meal=meal or "",
        )


class DashboardStats(BaseModel):
    """Totals over the trailing seven-day window."""
    total_workouts: int = 0
    total_minutes: int = 0
    most_trained: str = NO_CATEGORY


class ProgressReport(BaseModel):
    """Weekly score, level and nutrition verdict."""
    score: int
    level: str
    food_status: str
    consistency: int

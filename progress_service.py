from __future__ import annotations
import datetime
import logging
from typing import Iterable, List

from db import RoutineRepository, AsyncRoutineRepository
from exceptions import MalformedRecord
from models import DashboardStats, ProgressReport

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7
HEALTHY_KEYWORDS = ("rice", "apple", "chicken")

WORKOUT_TARGET = 4
WORKOUT_POINTS = 10
WORKOUT_MAX = 40
MINUTES_TARGET = 180
MINUTES_PER_POINT = 6
DURATION_MAX = 30
NUTRITION_MAX = 30
HEALTHY_RATIO = 0.6
ELITE_ABOVE = 80
BEGINNER_BELOW = 40


def window_bounds(
    today: datetime.date | None = None,
) -> tuple[datetime.date, datetime.date]:
    """Return the first and last day of the seven-day window ending ``today``."""
    today = today or datetime.date.today()
    return today - datetime.timedelta(days=WINDOW_DAYS - 1), today


def is_healthy_meal(meal: str) -> bool:
    meal = (meal or "").lower()
    return any(word in meal for word in HEALTHY_KEYWORDS)


def score_progress(stats: DashboardStats, meals: Iterable[str]) -> ProgressReport:
    """Score a week from its totals and the meals logged during it.

    Workouts earn up to 40 points, minutes up to 30 and the share of
    healthy meals up to 30. ``consistency`` maps four workouts to 100
    and keeps growing past that.
    """
    if stats.total_workouts >= WORKOUT_TARGET:
        score = WORKOUT_MAX
    else:
        score = stats.total_workouts * WORKOUT_POINTS

    if stats.total_minutes >= MINUTES_TARGET:
        score += DURATION_MAX
    else:
        score += stats.total_minutes // MINUTES_PER_POINT

    meals = list(meals)
    food_status = "Unbalanced"
    if meals:
        healthy = sum(1 for m in meals if is_healthy_meal(m))
        ratio = healthy / len(meals)
        score += int(ratio * NUTRITION_MAX)
        if ratio > HEALTHY_RATIO:
            food_status = "Healthy"

    if score > ELITE_ABOVE:
        level = "Elite"
    elif score < BEGINNER_BELOW:
        level = "Beginner"
    else:
        level = "Active"

    return ProgressReport(
        score=score,
        level=level,
        food_status=food_status,
        consistency=stats.total_workouts * 100 // WORKOUT_TARGET,
    )


class ProgressService:
    """Compute weekly dashboard statistics and the progress report.

    Each figure is read from the store on every call. The reads are
    separate queries, so a concurrent write may land between them.
    """

    def __init__(self, routine_repo: RoutineRepository) -> None:
        self.routines = routine_repo

    def dashboard_stats(self, today: datetime.date | None = None) -> DashboardStats:
        start, end = window_bounds(today)
        stats = DashboardStats(
            total_workouts=self.routines.count_in_window(start, end),
            total_minutes=self.routines.sum_duration_in_window(start, end),
            most_trained=self.routines.most_frequent_category_in_window(start, end),
        )
        logger.debug("stats for %s..%s: %s", start, end, stats)
        return stats

    def progress_report(self, today: datetime.date | None = None) -> ProgressReport:
        start, end = window_bounds(today)
        stats = self.dashboard_stats(end)
        meals = self.routines.meals_in_window(start, end)
        return score_progress(stats, meals)

    def skipped_records(self) -> List[MalformedRecord]:
        """Return stored rows left out of every aggregate."""
        skipped = self.routines.malformed_records()
        if skipped:
            logger.warning(
                "%d malformed routine(s) excluded from statistics", len(skipped)
            )
        return skipped


class AsyncProgressService:
    """Asynchronous variant of :class:`ProgressService`."""

    def __init__(self, routine_repo: AsyncRoutineRepository) -> None:
        self.routines = routine_repo

    async def dashboard_stats(
        self, today: datetime.date | None = None
    ) -> DashboardStats:
        start, end = window_bounds(today)
        return DashboardStats(
            total_workouts=await self.routines.count_in_window(start, end),
            total_minutes=await self.routines.sum_duration_in_window(start, end),
            most_trained=await self.routines.most_frequent_category_in_window(
                start, end
            ),
        )

    async def progress_report(
        self, today: datetime.date | None = None
    ) -> ProgressReport:
        start, end = window_bounds(today)
        stats = await self.dashboard_stats(end)
        meals = await self.routines.meals_in_window(start, end)
        return score_progress(stats, meals)

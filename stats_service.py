from __future__ import annotations

import datetime
from typing import Dict, List, Optional, Tuple

from algorithms.activity_metrics import ActivityMetrics, VolumePoint
from db import WorkoutRepository
from log_calendar import LogCalendar
from models import ExerciseCatalogEntry


class StatisticsService:
    """Compute workout statistics for charts from the workout store."""

    def __init__(
        self,
        workout_repo: WorkoutRepository,
        calendar: LogCalendar | None = None,
        weight_unit: str = "kg",
    ) -> None:
        self.workouts = workout_repo
        self.calendar = calendar or workout_repo.calendar
        self.weight_unit = weight_unit

    def daily_counts(
        self, start: datetime.datetime, end: datetime.datetime
    ) -> Dict[datetime.datetime, int]:
        workouts = self.workouts.fetch_workouts_in(start, end)
        return ActivityMetrics.daily_exercise_counts(workouts, self.calendar, start, end)

    def month_activity(self, year: int, month: int) -> Dict[datetime.datetime, int]:
        start, end = self.calendar.month_range(year, month)
        return self.daily_counts(start, end)

    def previous_volumes(
        self, exercise_name: str, before: datetime.datetime, limit: int = 4
    ) -> List[VolumePoint]:
        cutoff = self.calendar.normalize(before)
        workouts = self.workouts.fetch_workouts_before(cutoff, descending=True)
        return ActivityMetrics.previous_volumes(
            workouts, exercise_name, cutoff, limit, self.weight_unit, self.calendar
        )

    def volume_trend(
        self,
        exercise_name: str,
        day: datetime.datetime,
        current_volume: float,
        limit: int = 4,
    ) -> List[VolumePoint]:
        cutoff = self.calendar.normalize(day)
        workouts = self.workouts.fetch_workouts_before(cutoff, descending=True)
        return ActivityMetrics.volume_trend(
            workouts, exercise_name, cutoff, current_volume, limit, self.weight_unit, self.calendar
        )

    def muscle_group_share(
        self, exercises: List[ExerciseCatalogEntry], year: int, month: int
    ) -> List[Tuple[str, int]]:
        start, end = self.calendar.month_range(year, month)
        workouts = self.workouts.fetch_workouts_in(start, end)
        return ActivityMetrics.muscle_group_share(workouts, exercises, self.calendar, start)

    def year_heatmap(self, year: int) -> Dict[datetime.datetime, int]:
        start, end = self.calendar.year_range(year)
        workouts = self.workouts.fetch_workouts_in(start, end)
        return ActivityMetrics.year_heatmap(workouts, self.calendar, year)

    def year_summary(self, year: int) -> dict:
        start, end = self.calendar.year_range(year)
        workouts = self.workouts.fetch_workouts_in(start, end)
        return ActivityMetrics.year_summary(workouts, self.calendar, year)

    def available_years(self, current_year: Optional[int] = None) -> List[int]:
        if current_year is None:
            current_year = self.calendar.today().year
        return ActivityMetrics.available_years(
            self.workouts.fetch_all_workouts(), self.calendar, current_year
        )

    def exercise_series(self, exercise_id: str, period: str = "week") -> List[VolumePoint]:
        return ActivityMetrics.exercise_volume_series(
            self.workouts.fetch_all_workouts(),
            exercise_id,
            self.calendar,
            period,
            self.weight_unit,
        )

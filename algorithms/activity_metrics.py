import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from algorithms.math_tools import MathTools
from algorithms.weight_converter import WeightConverter
from log_calendar import LogCalendar
from models import ExerciseCatalogEntry, Workout

VolumePoint = Tuple[datetime.datetime, float]
Moment = datetime.datetime | datetime.date


def _instant(value: Moment, calendar: Optional[LogCalendar]) -> datetime.datetime:
    # aware datetimes are exact bounds; dates and naive values mean a local day
    if isinstance(value, datetime.datetime) and value.tzinfo is not None:
        return value
    return (calendar or LogCalendar()).normalize(value)


class ActivityMetrics:
    """Derived views over stored workouts.

    Every method is a pure function of its arguments: the workout list is
    never mutated and empty input yields empty (or zero) results. Bounds may
    be aware datetimes, naive datetimes or dates.
    """

    OTHER_GROUP = "other"
    PERIODS = ("day", "week", "month")

    @staticmethod
    def daily_exercise_counts(
        workouts: Iterable[Workout],
        calendar: LogCalendar,
        start: Moment,
        end: Moment,
    ) -> Dict[datetime.datetime, int]:
        """Distinct exercises logged per day for workouts in ``[start, end)``."""
        start, end = _instant(start, calendar), _instant(end, calendar)
        buckets: Dict[datetime.datetime, set] = {}
        for workout in workouts:
            if not start <= workout.date < end:
                continue
            day = calendar.normalize(workout.date)
            ids = buckets.setdefault(day, set())
            ids.update(s.exercise_id for s in workout.sets)
        return {day: len(ids) for day, ids in buckets.items()}

    @staticmethod
    def daily_exercise_counts_for_month(
        workouts: Iterable[Workout], calendar: LogCalendar, month: Moment
    ) -> Dict[datetime.datetime, int]:
        start, end = calendar.month_range_for(month)
        return ActivityMetrics.daily_exercise_counts(workouts, calendar, start, end)

    @staticmethod
    def previous_volumes(
        workouts: Iterable[Workout],
        exercise_name: str,
        before: Moment,
        limit: int = 4,
        unit: str = "kg",
        calendar: Optional[LogCalendar] = None,
    ) -> List[VolumePoint]:
        """Most recent non-zero volumes for ``exercise_name`` before ``before``.

        Returns at most ``limit`` ``(date, volume)`` pairs, oldest first.
        """
        before = _instant(before, calendar)
        earlier = sorted(
            (w for w in workouts if w.date < before), key=lambda w: w.date, reverse=True
        )
        volumes: List[VolumePoint] = []
        for workout in earlier:
            if len(volumes) >= limit:
                break
            volume = MathTools.volume(
                (s.reps, s.weight) for s in workout.sets if s.exercise_name == exercise_name
            )
            if volume <= 0:
                continue
            volumes.append((workout.date, WeightConverter.display_value(volume, unit)))
        volumes.reverse()
        return volumes

    @staticmethod
    def volume_trend(
        workouts: Iterable[Workout],
        exercise_name: str,
        day: Moment,
        current_volume: float,
        limit: int = 4,
        unit: str = "kg",
        calendar: Optional[LogCalendar] = None,
    ) -> List[VolumePoint]:
        """History window plus today's live volume as the last point.

        ``current_volume`` is in kilograms, like stored weights and draft
        input. An empty list means there is nothing to chart yet.
        """
        if current_volume <= 0:
            return []
        day = _instant(day, calendar)
        points = ActivityMetrics.previous_volumes(
            workouts, exercise_name, day, limit, unit, calendar
        )
        points.append((day, WeightConverter.display_value(current_volume, unit)))
        return points

    @staticmethod
    def muscle_group_share(
        workouts: Iterable[Workout],
        exercises: Iterable[ExerciseCatalogEntry],
        calendar: LogCalendar,
        month: Moment,
    ) -> List[Tuple[str, int]]:
        """Count exercise appearances per muscle group within ``month``.

        Each workout contributes once per distinct exercise. Ordered by count
        descending, then group name.
        """
        lookup = {item.id: item.muscle_group for item in exercises}
        start, end = calendar.month_range_for(month)
        counts: Dict[str, int] = {}
        for workout in workouts:
            if not start <= workout.date < end:
                continue
            for exercise_id in workout.exercise_ids():
                group = lookup.get(exercise_id, ActivityMetrics.OTHER_GROUP)
                counts[group] = counts.get(group, 0) + 1
        return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))

    @staticmethod
    def heatmap_tier(count: int) -> int:
        """Severity tier for a day's exercise count: 0, 1-2, 3-4, 5+."""
        if count <= 0:
            return 0
        if count <= 2:
            return 1
        if count <= 4:
            return 2
        return 3

    @staticmethod
    def year_heatmap(
        workouts: Iterable[Workout], calendar: LogCalendar, year: int
    ) -> Dict[datetime.datetime, int]:
        start, end = calendar.year_range(year)
        return ActivityMetrics.daily_exercise_counts(workouts, calendar, start, end)

    @staticmethod
    def year_summary(workouts: Iterable[Workout], calendar: LogCalendar, year: int) -> dict:
        counts = ActivityMetrics.year_heatmap(workouts, calendar, year)
        active = sum(1 for c in counts.values() if c > 0)
        total = calendar.total_days_in_year(year)
        return {
            "year": year,
            "active_days": active,
            "total_days": total,
            "percent": round(active * 100 / total) if total else 0,
        }

    @staticmethod
    def available_years(
        workouts: Iterable[Workout], calendar: LogCalendar, current_year: Optional[int] = None
    ) -> List[int]:
        years = {calendar.local_date(w.date).year for w in workouts}
        if current_year is not None:
            years.add(current_year)
        return sorted(years)

    @staticmethod
    def _period_start(calendar: LogCalendar, value: datetime.datetime, period: str) -> datetime.datetime:
        if period == "day":
            return calendar.normalize(value)
        if period == "week":
            return calendar.start_of_week(value)
        if period == "month":
            return calendar.month_start(value)
        raise ValueError(f"unknown period: {period}")

    @staticmethod
    def exercise_volume_series(
        workouts: Iterable[Workout],
        exercise_id: str,
        calendar: LogCalendar,
        period: str = "week",
        unit: str = "kg",
    ) -> List[VolumePoint]:
        """Total volume of one exercise per day, week or month, oldest first.

        Buckets without a logged set for the exercise are omitted.
        """
        buckets: Dict[datetime.datetime, float] = {}
        for workout in workouts:
            matching = [s for s in workout.sets if s.exercise_id == exercise_id]
            if not matching:
                continue
            key = ActivityMetrics._period_start(calendar, workout.date, period)
            buckets[key] = buckets.get(key, 0.0) + MathTools.volume(
                (s.reps, s.weight) for s in matching
            )
        return [
            (key, WeightConverter.display_value(volume, unit))
            for key, volume in sorted(buckets.items())
        ]

    @staticmethod
    def monthly_volume_series(
        workouts: Iterable[Workout], exercise_id: str, calendar: LogCalendar, unit: str = "kg"
    ) -> List[VolumePoint]:
        return ActivityMetrics.exercise_volume_series(workouts, exercise_id, calendar, "month", unit)

    @staticmethod
    def labelled(points: Sequence[VolumePoint], calendar: LogCalendar) -> List[dict]:
        """Chart-ready ``{"label", "value"}`` rows."""
        return [{"label": calendar.day_key(d), "value": v} for d, v in points]

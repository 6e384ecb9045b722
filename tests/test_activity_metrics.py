import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms.activity_metrics import ActivityMetrics
from log_calendar import LogCalendar
from models import ExerciseCatalogEntry, ExerciseSet, Workout


CATALOG = [
    ExerciseCatalogEntry("squat", "Squat", "Squat", "legs"),
    ExerciseCatalogEntry("bench_press", "Bench Press", "Bench Press", "chest"),
    ExerciseCatalogEntry("deadlift", "Deadlift", "Deadlift", "back"),
]


class ActivityMetricsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.calendar = LogCalendar("UTC")

    def _day(self, y: int, m: int, d: int) -> datetime.datetime:
        return self.calendar.normalize(datetime.date(y, m, d))

    def _workout(self, day, *sets) -> Workout:
        return Workout(date=day, sets=list(sets))

    def _squat(self, weight: float, reps: int) -> ExerciseSet:
        return ExerciseSet("Squat", "squat", weight, reps)

    def _squat_history(self):
        return [
            self._workout(self._day(2024, 3, 1), self._squat(100, 10)),
            self._workout(
                self._day(2024, 3, 2),
                ExerciseSet("Bench Press", "bench_press", 80, 10),
                self._squat(0, 10),
            ),
            self._workout(self._day(2024, 3, 3), self._squat(120, 10)),
            self._workout(self._day(2024, 3, 4), self._squat(110, 10)),
        ]

    def test_daily_counts_are_distinct(self) -> None:
        day = self._day(2024, 3, 1)
        workouts = [
            self._workout(
                day,
                self._squat(100, 5),
                self._squat(100, 5),
                ExerciseSet("Bench Press", "bench_press", 80, 10),
            )
        ]
        counts = ActivityMetrics.daily_exercise_counts(
            workouts, self.calendar, day, self.calendar.add_days(day, 1)
        )
        self.assertEqual(counts, {day: 2})

    def test_daily_counts_respect_range(self) -> None:
        workouts = self._squat_history()
        counts = ActivityMetrics.daily_exercise_counts_for_month(
            workouts, self.calendar, datetime.date(2024, 3, 15)
        )
        self.assertEqual(len(counts), 4)
        self.assertEqual(
            ActivityMetrics.daily_exercise_counts_for_month(workouts, self.calendar, datetime.date(2024, 4, 1)),
            {},
        )

    def test_previous_volumes_skip_zero(self) -> None:
        points = ActivityMetrics.previous_volumes(
            self._squat_history(), "Squat", self._day(2024, 3, 5)
        )
        self.assertEqual(
            points,
            [
                (self._day(2024, 3, 1), 1000.0),
                (self._day(2024, 3, 3), 1200.0),
                (self._day(2024, 3, 4), 1100.0),
            ],
        )

    def test_previous_volumes_limit_keeps_most_recent(self) -> None:
        points = ActivityMetrics.previous_volumes(
            self._squat_history(), "Squat", self._day(2024, 3, 5), limit=2
        )
        self.assertEqual([v for _, v in points], [1200.0, 1100.0])
        points = ActivityMetrics.previous_volumes(
            self._squat_history(), "Squat", self._day(2024, 3, 5), limit=3
        )
        self.assertEqual([v for _, v in points], [1000.0, 1200.0, 1100.0])

    def test_date_bounds(self) -> None:
        history = self._squat_history()
        counts = ActivityMetrics.daily_exercise_counts(
            history, self.calendar, datetime.date(2024, 3, 1), datetime.date(2024, 4, 1)
        )
        self.assertEqual(len(counts), 4)
        self.assertEqual(counts[self._day(2024, 3, 2)], 2)

        counts = ActivityMetrics.daily_exercise_counts(
            history, self.calendar, datetime.datetime(2024, 3, 2, 9, 30), datetime.date(2024, 3, 4)
        )
        self.assertEqual(sorted(counts), [self._day(2024, 3, 2), self._day(2024, 3, 3)])

        points = ActivityMetrics.previous_volumes(
            history, "Squat", datetime.date(2024, 3, 5), calendar=self.calendar
        )
        self.assertEqual([v for _, v in points], [1000.0, 1200.0, 1100.0])

        trend = ActivityMetrics.volume_trend(
            history, "Squat", datetime.date(2024, 3, 5), 1300.0, calendar=self.calendar
        )
        self.assertEqual(trend[-1], (self._day(2024, 3, 5), 1300.0))

    def test_date_bounds_use_calendar_zone(self) -> None:
        tokyo = LogCalendar("Asia/Tokyo")
        day = tokyo.normalize(datetime.date(2024, 3, 2))
        workouts = [self._workout(day, self._squat(100, 5))]
        counts = ActivityMetrics.daily_exercise_counts(
            workouts, tokyo, datetime.date(2024, 3, 2), datetime.date(2024, 3, 3)
        )
        self.assertEqual(counts, {day: 1})
        points = ActivityMetrics.previous_volumes(
            workouts, "Squat", datetime.date(2024, 3, 2), calendar=tokyo
        )
        self.assertEqual(points, [])

    def test_previous_volumes_exclude_cutoff_day(self) -> None:
        points = ActivityMetrics.previous_volumes(
            self._squat_history(), "Squat", self._day(2024, 3, 4)
        )
        self.assertEqual([v for _, v in points], [1000.0, 1200.0])

    def test_volume_trend_appends_today(self) -> None:
        today = self._day(2024, 3, 5)
        points = ActivityMetrics.volume_trend(self._squat_history(), "Squat", today, 1300.0)
        self.assertEqual(len(points), 4)
        self.assertEqual(points[-1], (today, 1300.0))
        self.assertEqual(ActivityMetrics.volume_trend(self._squat_history(), "Squat", today, 0.0), [])

    def test_volume_in_pounds(self) -> None:
        points = ActivityMetrics.previous_volumes(
            self._squat_history()[:1], "Squat", self._day(2024, 3, 5), unit="lb"
        )
        self.assertAlmostEqual(points[0][1], 2204.6226218)

    def test_muscle_group_share(self) -> None:
        workouts = [
            self._workout(
                self._day(2024, 3, 1),
                self._squat(100, 5),
                self._squat(100, 5),
                ExerciseSet("Bench Press", "bench_press", 80, 10),
            ),
            self._workout(
                self._day(2024, 3, 8),
                self._squat(100, 5),
                ExerciseSet("Deadlift", "deadlift", 140, 5),
            ),
            self._workout(self._day(2024, 3, 9), ExerciseSet("Sled Push", "Sled Push", 40, 10)),
            self._workout(self._day(2024, 4, 1), ExerciseSet("Deadlift", "deadlift", 140, 5)),
        ]
        share = ActivityMetrics.muscle_group_share(
            workouts, CATALOG, self.calendar, datetime.date(2024, 3, 1)
        )
        self.assertEqual(share, [("legs", 2), ("back", 1), ("chest", 1), ("other", 1)])

    def test_heatmap_tiers(self) -> None:
        tiers = [ActivityMetrics.heatmap_tier(c) for c in (0, 1, 2, 3, 4, 5, 9)]
        self.assertEqual(tiers, [0, 1, 1, 2, 2, 3, 3])

    def test_year_summary(self) -> None:
        summary = ActivityMetrics.year_summary(self._squat_history(), self.calendar, 2024)
        self.assertEqual(summary["active_days"], 4)
        self.assertEqual(summary["total_days"], 366)
        self.assertEqual(summary["percent"], 1)
        self.assertEqual(ActivityMetrics.year_summary([], self.calendar, 2023)["active_days"], 0)

    def test_available_years(self) -> None:
        workouts = self._squat_history() + [self._workout(self._day(2021, 6, 1), self._squat(60, 5))]
        self.assertEqual(ActivityMetrics.available_years(workouts, self.calendar, 2026), [2021, 2024, 2026])
        self.assertEqual(ActivityMetrics.available_years([], self.calendar, 2026), [2026])

    def test_exercise_volume_series_by_week(self) -> None:
        # 2024-03-04 is a Monday
        workouts = self._squat_history() + [self._workout(self._day(2024, 3, 6), self._squat(100, 5))]
        series = ActivityMetrics.exercise_volume_series(workouts, "squat", self.calendar, "week")
        self.assertEqual(
            series,
            [
                (self._day(2024, 2, 26), 2200.0),
                (self._day(2024, 3, 4), 1600.0),
            ],
        )
        monthly = ActivityMetrics.monthly_volume_series(workouts, "squat", self.calendar)
        self.assertEqual(monthly, [(self._day(2024, 3, 1), 3800.0)])
        with self.assertRaises(ValueError):
            ActivityMetrics.exercise_volume_series(workouts, "squat", self.calendar, "decade")

    def test_empty_input(self) -> None:
        day = self._day(2024, 3, 1)
        self.assertEqual(ActivityMetrics.daily_exercise_counts([], self.calendar, day, day), {})
        self.assertEqual(ActivityMetrics.previous_volumes([], "Squat", day), [])
        self.assertEqual(ActivityMetrics.muscle_group_share([], CATALOG, self.calendar, day), [])
        self.assertEqual(ActivityMetrics.exercise_volume_series([], "squat", self.calendar), [])

    def test_labelled(self) -> None:
        rows = ActivityMetrics.labelled([(self._day(2024, 3, 1), 1000.0)], self.calendar)
        self.assertEqual(rows, [{"label": "2024-03-01", "value": 1000.0}])


if __name__ == "__main__":
    unittest.main()

import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import MathTools, WeightConverter
from models import DraftExerciseEntry, DraftSetRow, ExerciseCatalogEntry, ExerciseSet, Workout


class MathToolsTestCase(unittest.TestCase):
    def test_parse_int(self) -> None:
        self.assertEqual(MathTools.parse_int("80"), 80)
        self.assertEqual(MathTools.parse_int("-5"), -5)
        self.assertIsNone(MathTools.parse_int("80.5"))
        self.assertIsNone(MathTools.parse_int(""))
        self.assertIsNone(MathTools.parse_int(" 80"))
        self.assertIsNone(MathTools.parse_int("1,000"))

    def test_rounding_half_away_from_zero(self) -> None:
        self.assertEqual(MathTools.round_half_away_from_zero(82.5), 83)
        self.assertEqual(MathTools.round_half_away_from_zero(82.4), 82)
        self.assertEqual(MathTools.round_half_away_from_zero(-2.5), -3)
        self.assertEqual(MathTools.round_half_away_from_zero(2.5), 3)

    def test_volume(self) -> None:
        self.assertEqual(MathTools.volume([(10, 80.0), (8, 85.0)]), 1480.0)
        self.assertEqual(MathTools.volume([]), 0.0)

    def test_weight_converter(self) -> None:
        self.assertEqual(WeightConverter.kg_to_lb(100), 220.46)
        self.assertEqual(WeightConverter.lb_to_kg(220.46), 100.0)
        self.assertEqual(WeightConverter.display_value(100, "kg"), 100)
        self.assertEqual(WeightConverter.UNITS, ("kg", "lb"))
        with self.assertRaises(ValueError):
            WeightConverter.factor("stone")


class DraftRowTestCase(unittest.TestCase):
    def test_validity(self) -> None:
        self.assertTrue(DraftSetRow("80", "10").is_valid)
        self.assertFalse(DraftSetRow("80.5", "10").is_valid)
        self.assertFalse(DraftSetRow("", "10").is_valid)
        self.assertFalse(DraftSetRow("80", "ten").is_valid)

    def test_to_exercise_set(self) -> None:
        s = DraftSetRow("80", "10").to_exercise_set("Bench Press", "bench_press")
        self.assertEqual(s, ExerciseSet("Bench Press", "bench_press", 80.0, 10))
        self.assertIsNone(DraftSetRow("80.5", "10").to_exercise_set("Bench Press", "bench_press"))

    def test_from_exercise_set_rounds(self) -> None:
        row = DraftSetRow.from_exercise_set(ExerciseSet("Squat", "squat", 82.5, 5))
        self.assertEqual(row.weight_text, "83")
        self.assertEqual(row.reps_text, "5")

    def test_new_rows_have_unique_ids(self) -> None:
        self.assertNotEqual(DraftSetRow().id, DraftSetRow().id)


class DraftEntryTestCase(unittest.TestCase):
    def test_with_empty_rows(self) -> None:
        entry = DraftExerciseEntry.with_empty_rows("Squat", 3, "squat")
        self.assertEqual(len(entry.sets), 3)
        self.assertEqual(entry.completed_set_count, 0)
        self.assertEqual(len(DraftExerciseEntry.with_empty_rows("Squat", 0).sets), 0)
        with self.assertRaises(ValueError):
            DraftExerciseEntry.with_empty_rows("Squat", -1)

    def test_exercise_sets_skip_invalid_rows(self) -> None:
        entry = DraftExerciseEntry(
            "Squat",
            [DraftSetRow("100", "5"), DraftSetRow("abc", "5"), DraftSetRow("110", "3")],
            "squat",
        )
        sets = entry.exercise_sets()
        self.assertEqual([(s.weight, s.reps) for s in sets], [(100.0, 5), (110.0, 3)])
        self.assertEqual(entry.completed_set_count, 2)

    def test_missing_catalog_id_falls_back_to_name(self) -> None:
        entry = DraftExerciseEntry("Sled Push", [DraftSetRow("40", "10")])
        self.assertEqual(entry.exercise_sets()[0].exercise_id, "Sled Push")

    def test_current_volume_counts_decimal_weights(self) -> None:
        entry = DraftExerciseEntry("Squat", [DraftSetRow("82.5", "2"), DraftSetRow("100", "")])
        self.assertEqual(entry.current_volume, 165.0)

    def test_to_dict(self) -> None:
        entry = DraftExerciseEntry("Squat", [DraftSetRow("100", "5")], "squat")
        data = entry.to_dict()
        self.assertEqual(data["exercise_id"], "squat")
        self.assertEqual(data["sets"][0]["weight"], "100")
        self.assertTrue(data["sets"][0]["valid"])
        self.assertEqual(data["completed_sets"], 1)


class WorkoutTestCase(unittest.TestCase):
    def test_totals(self) -> None:
        workout = Workout(
            date=datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
            sets=[
                ExerciseSet("Squat", "squat", 100.0, 5),
                ExerciseSet("Squat", "squat", 100.0, 5),
                ExerciseSet("Bench Press", "bench_press", 80.0, 10),
            ],
        )
        self.assertEqual(workout.total_volume, 1800.0)
        self.assertEqual(workout.exercise_ids(), {"squat", "bench_press"})
        self.assertEqual(workout.to_dict()["date"], "2024-01-01T00:00:00+00:00")

    def test_catalog_entry_from_dict(self) -> None:
        camel = ExerciseCatalogEntry.from_dict(
            {"id": "squat", "name": "Squat", "nameEn": "Squat", "muscleGroup": "legs"}
        )
        snake = ExerciseCatalogEntry.from_dict(
            {"id": "squat", "name": "Squat", "name_en": "Squat", "muscle_group": "legs"}
        )
        self.assertEqual(camel, snake)
        with self.assertRaises(KeyError):
            ExerciseCatalogEntry.from_dict({"id": "x", "name": "X"})

    def test_catalog_entry_display_name(self) -> None:
        entry = ExerciseCatalogEntry.from_dict(
            {"id": "squat", "name": "スクワット", "nameEn": "Squat", "muscleGroup": "legs"}
        )
        self.assertEqual(entry.display_name(english=True), "Squat")
        self.assertEqual(entry.display_name(), "スクワット")
        untranslated = ExerciseCatalogEntry.from_dict(
            {"id": "plank", "name": "プランク", "muscleGroup": "abs"}
        )
        self.assertEqual(untranslated.display_name(english=True), "プランク")


if __name__ == "__main__":
    unittest.main()

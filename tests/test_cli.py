import os
import sys
import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import backup_db, demo_data, export_workouts, main, restore_db, year_summary
from db import WorkoutRepository


class CLIToolsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.tmp.name, "test_cli.db")
        self.yaml_path = os.path.join(self.tmp.name, "test_cli.yaml")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def _quiet(self, func, *args):
        with redirect_stdout(io.StringIO()) as out:
            result = func(*args)
        return result, out.getvalue()

    def test_demo_data_only_once(self) -> None:
        inserted, out = self._quiet(demo_data, self.db_path, self.yaml_path)
        self.assertTrue(inserted)
        self.assertIn("Demo data inserted", out)
        self.assertEqual(len(WorkoutRepository(self.db_path).fetch_all_workouts()), 2)
        inserted, out = self._quiet(demo_data, self.db_path, self.yaml_path)
        self.assertFalse(inserted)
        self.assertIn("already contains", out)

    def test_export(self) -> None:
        self._quiet(demo_data, self.db_path, self.yaml_path)
        csv_path = export_workouts(self.db_path, "csv", self.tmp.name, self.yaml_path)
        with open(csv_path, encoding="utf-8") as f:
            lines = f.read().splitlines()
        self.assertEqual(lines[0], "Date,Exercise,Exercise ID,Weight,Reps")
        self.assertEqual(len(lines), 5)

        json_path = export_workouts(self.db_path, "json", self.tmp.name, self.yaml_path)
        with open(json_path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data[1]["note"], "Demo session")

    def test_backup_restore(self) -> None:
        self._quiet(demo_data, self.db_path, self.yaml_path)
        backup = os.path.join(self.tmp.name, "backup.db")
        backup_db(self.db_path, backup)
        WorkoutRepository(self.db_path).delete_all()
        self.assertEqual(WorkoutRepository(self.db_path).fetch_all_workouts(), [])
        restore_db(backup, self.db_path)
        self.assertEqual(len(WorkoutRepository(self.db_path).fetch_all_workouts()), 2)

    def test_year_summary(self) -> None:
        summary = year_summary(self.db_path, self.yaml_path, 2001)
        self.assertEqual(summary["active_days"], 0)
        self.assertEqual(summary["total_days"], 365)

    def test_main_convert(self) -> None:
        _, out = self._quiet(main, ["convert", "--weight", "100", "--unit", "kg"])
        self.assertEqual(out.strip(), "100.0 kg = 220.46 lb")

    def test_main_summary(self) -> None:
        _, out = self._quiet(
            main,
            ["summary", "--db", self.db_path, "--yaml", self.yaml_path, "--year", "2001"],
        )
        self.assertEqual(out.strip(), "2001: 0/365 active days (0%)")


if __name__ == "__main__":
    unittest.main()

import argparse
import logging
import os
import shutil

from algorithms.weight_converter import WeightConverter
from db import WorkoutRepository, SettingsRepository
from models import ExerciseSet, Workout
from stats_service import StatisticsService

logger = logging.getLogger(__name__)


def export_workouts(db_path: str, fmt: str, output_dir: str = ".", yaml_path: str = "settings.yaml") -> str:
    """Write every stored workout to ``workouts.<fmt>`` in ``output_dir``."""
    calendar = SettingsRepository(db_path, yaml_path).calendar()
    workouts = WorkoutRepository(db_path, calendar)
    data = workouts.export_csv() if fmt == "csv" else workouts.export_json()
    out_path = os.path.join(output_dir, f"workouts.{fmt}")
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(data)
    logger.info("exported workouts to %s", out_path)
    return out_path


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(db_path: str, yaml_path: str) -> bool:
    """Populate the database with two demo workouts if it is empty."""
    calendar = SettingsRepository(db_path, yaml_path).calendar()
    workouts = WorkoutRepository(db_path, calendar)
    if workouts.fetch_all_workouts():
        print("Database already contains workouts")
        return False
    today = calendar.today()
    workouts.insert(
        Workout(
            date=calendar.add_days(today, -7),
            sets=[
                ExerciseSet("Bench Press", "bench_press", 80.0, 10),
                ExerciseSet("Squat", "squat", 100.0, 8),
            ],
            timezone=calendar.timezone,
        )
    )
    workouts.insert(
        Workout(
            date=today,
            note="Demo session",
            sets=[
                ExerciseSet("Bench Press", "bench_press", 85.0, 8),
                ExerciseSet("Bench Press", "bench_press", 85.0, 6),
            ],
            timezone=calendar.timezone,
        )
    )
    workouts.commit()
    print("Demo data inserted")
    return True


def year_summary(db_path: str, yaml_path: str, year: int | None = None) -> dict:
    calendar = SettingsRepository(db_path, yaml_path).calendar()
    stats = StatisticsService(WorkoutRepository(db_path, calendar), calendar)
    if year is None:
        year = calendar.today().year
    return stats.year_summary(year)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="TrainLog utility commands")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default="workout.db")
    exp.add_argument("--yaml", default="settings.yaml")
    exp.add_argument("--fmt", choices=["csv", "json"], default="csv")
    exp.add_argument("--out", default=".")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="workout.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="workout.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="workout.db")
    demo.add_argument("--yaml", default="settings.yaml")

    summ = sub.add_parser("summary")
    summ.add_argument("--db", default="workout.db")
    summ.add_argument("--yaml", default="settings.yaml")
    summ.add_argument("--year", type=int)

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.cmd == "export":
        export_workouts(args.db, args.fmt, args.out, args.yaml)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "summary":
        s = year_summary(args.db, args.yaml, args.year)
        print(f"{s['year']}: {s['active_days']}/{s['total_days']} active days ({s['percent']}%)")
    elif args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lb")
        else:
            print(f"{args.weight} lb = {WeightConverter.lb_to_kg(args.weight)} kg")


if __name__ == "__main__":
    main()

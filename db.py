import sqlite3
import aiosqlite
import csv
import datetime
import io
import json
import logging
from contextlib import contextmanager, asynccontextmanager
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from config import YamlConfig
from errors import StorageCommitError
from log_calendar import LogCalendar
from models import ExerciseSet, Workout
from settings_schema import validate_settings

logger = logging.getLogger(__name__)


def to_storage_instant(value: datetime.datetime) -> str:
    """Fixed-width UTC ISO string so stored dates sort and compare as text."""
    if value.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return value.astimezone(datetime.timezone.utc).isoformat(timespec="microseconds")


def from_storage_instant(text: str, timezone: str = "UTC") -> datetime.datetime:
    return datetime.datetime.fromisoformat(text).astimezone(ZoneInfo(timezone))


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "workouts": (
            """CREATE TABLE workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date TEXT NOT NULL,
                    timezone TEXT NOT NULL DEFAULT 'UTC',
                    note TEXT NOT NULL DEFAULT ''
                );""",
            ["id", "date", "timezone", "note"],
        ),
        "exercise_sets": (
            """CREATE TABLE exercise_sets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    exercise_name TEXT NOT NULL,
                    exercise_id TEXT NOT NULL,
                    weight REAL NOT NULL,
                    reps INTEGER NOT NULL,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "workout_id",
                "position",
                "exercise_name",
                "exercise_id",
                "weight",
                "reps",
            ],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    _INDEXES = (
        "CREATE INDEX IF NOT EXISTS idx_workouts_date ON workouts(date);",
        "CREATE INDEX IF NOT EXISTS idx_exercise_sets_workout ON exercise_sets(workout_id);",
    )

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            for sql in self._INDEXES:
                conn.execute(sql)
            conn.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "timezone":
                        return "'UTC'"
                    if col in ("note", "exercise_id"):
                        return "''"
                    if col == "position":
                        return "0"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "timezone": "UTC",
            "first_weekday": "0",
            "weight_unit": "kg",
            "initial_set_count": "5",
            "language": "en",
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def _delete_all(self, table: str) -> None:
        self.execute(f"DELETE FROM {table};")


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows


_WORKOUT_COLUMNS = "id, date, timezone, note"
_SET_COLUMNS = "id, workout_id, exercise_name, exercise_id, weight, reps"


def _build_workouts(workout_rows: List[Tuple], set_rows: List[Tuple]) -> List[Workout]:
    sets_by_workout: dict[int, list[ExerciseSet]] = {}
    for sid, wid, name, exercise_id, weight, reps in set_rows:
        sets_by_workout.setdefault(wid, []).append(
            ExerciseSet(
                exercise_name=name,
                exercise_id=exercise_id,
                weight=float(weight),
                reps=int(reps),
                id=sid,
            )
        )
    return [
        Workout(
            date=from_storage_instant(date, tz),
            note=note,
            sets=sets_by_workout.get(wid, []),
            id=wid,
            timezone=tz,
        )
        for wid, date, tz, note in workout_rows
    ]


def _sets_query(workout_ids: List[int]) -> str:
    marks = ", ".join("?" for _ in workout_ids)
    return (
        f"SELECT {_SET_COLUMNS} FROM exercise_sets WHERE workout_id IN ({marks}) "
        "ORDER BY workout_id, position, id;"
    )


class WorkoutRepository(BaseRepository):
    """Persistent store for date-keyed workouts.

    Reads go straight to SQLite. Writes (:meth:`insert`, :meth:`replace_sets`,
    :meth:`delete`) are staged and applied together by :meth:`commit` in a
    single transaction; staged changes are never visible on the ``Workout``
    objects until the commit succeeds.
    """

    def __init__(self, db_path: str = "workout.db", calendar: LogCalendar | None = None) -> None:
        super().__init__(db_path)
        self.calendar = calendar or LogCalendar()
        self._pending: list[tuple[str, Workout, list[ExerciseSet]]] = []

    def _aware(self, value: datetime.datetime | datetime.date) -> datetime.datetime:
        if isinstance(value, datetime.datetime) and value.tzinfo is not None:
            return value
        if isinstance(value, datetime.datetime):
            return value.replace(tzinfo=self.calendar.tz)
        return self.calendar.normalize(value)

    def _hydrate(self, workout_rows: List[Tuple]) -> List[Workout]:
        if not workout_rows:
            return []
        ids = [row[0] for row in workout_rows]
        set_rows = self.fetch_all(_sets_query(ids), tuple(ids))
        return _build_workouts(workout_rows, set_rows)

    def fetch_workout(self, on_date: datetime.datetime | datetime.date) -> Optional[Workout]:
        """Return the workout stored for the calendar day of ``on_date``."""
        start, end = self.calendar.day_range(on_date)
        workouts = self.fetch_workouts_in(start, end, limit=1)
        return workouts[0] if workouts else None

    def fetch_workouts_in(
        self,
        start: datetime.datetime | datetime.date,
        end: datetime.datetime | datetime.date,
        limit: int | None = None,
    ) -> List[Workout]:
        """Workouts dated in ``[start, end)``, oldest first."""
        query = f"SELECT {_WORKOUT_COLUMNS} FROM workouts WHERE date >= ? AND date < ? ORDER BY date ASC, id ASC"
        params: list[str | int] = [
            to_storage_instant(self._aware(start)),
            to_storage_instant(self._aware(end)),
        ]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return self._hydrate(self.fetch_all(query + ";", tuple(params)))

    def fetch_workouts_before(
        self, before: datetime.datetime | datetime.date, descending: bool = True
    ) -> List[Workout]:
        order = "DESC" if descending else "ASC"
        rows = self.fetch_all(
            f"SELECT {_WORKOUT_COLUMNS} FROM workouts WHERE date < ? ORDER BY date {order}, id {order};",
            (to_storage_instant(self._aware(before)),),
        )
        return self._hydrate(rows)

    def fetch_all_workouts(self, descending: bool = False) -> List[Workout]:
        order = "DESC" if descending else "ASC"
        rows = self.fetch_all(
            f"SELECT {_WORKOUT_COLUMNS} FROM workouts ORDER BY date {order}, id {order};"
        )
        return self._hydrate(rows)

    def fetch_by_id(self, workout_id: int) -> Workout:
        rows = self.fetch_all(
            f"SELECT {_WORKOUT_COLUMNS} FROM workouts WHERE id = ?;", (workout_id,)
        )
        if not rows:
            raise ValueError("workout not found")
        return self._hydrate(rows)[0]

    def insert(self, workout: Workout) -> None:
        if workout.date.tzinfo is None:
            raise ValueError("workout date must be timezone-aware")
        self._pending.append(("insert", workout, list(workout.sets)))

    def replace_sets(self, workout: Workout, sets: Iterable[ExerciseSet]) -> None:
        if workout.id is None:
            raise ValueError("workout not persisted")
        self._pending.append(("replace", workout, list(sets)))

    def delete(self, workout: Workout) -> None:
        if workout.id is None:
            raise ValueError("workout not persisted")
        self._pending.append(("delete", workout, []))

    @property
    def has_pending_changes(self) -> bool:
        return bool(self._pending)

    def rollback(self) -> None:
        """Discard staged changes."""
        self._pending.clear()

    @staticmethod
    def _insert_sets(conn: sqlite3.Connection, workout_id: int, sets: List[ExerciseSet]) -> List[int]:
        ids = []
        for position, s in enumerate(sets):
            if s.reps is None or s.weight is None:
                raise ValueError("set requires weight and reps")
            cur = conn.execute(
                "INSERT INTO exercise_sets (workout_id, position, exercise_name, exercise_id, weight, reps) "
                "VALUES (?, ?, ?, ?, ?, ?);",
                (workout_id, position, s.exercise_name, s.exercise_id, float(s.weight), int(s.reps)),
            )
            ids.append(cur.lastrowid)
        return ids

    def commit(self) -> None:
        """Apply staged changes atomically.

        Raises :class:`StorageCommitError` when SQLite rejects any of them; in
        that case nothing is written and the staged changes are dropped.
        """
        pending, self._pending = self._pending, []
        if not pending:
            return
        applied: list[tuple[str, Workout, list[ExerciseSet], Optional[int], list[int]]] = []
        try:
            with self._connection() as conn:
                for action, workout, sets in pending:
                    if action == "insert":
                        cur = conn.execute(
                            "INSERT INTO workouts (date, timezone, note) VALUES (?, ?, ?);",
                            (to_storage_instant(workout.date), workout.timezone, workout.note),
                        )
                        wid = cur.lastrowid
                        set_ids = self._insert_sets(conn, wid, sets)
                        applied.append((action, workout, sets, wid, set_ids))
                    elif action == "replace":
                        conn.execute(
                            "DELETE FROM exercise_sets WHERE workout_id = ?;", (workout.id,)
                        )
                        set_ids = self._insert_sets(conn, workout.id, sets)
                        applied.append((action, workout, sets, workout.id, set_ids))
                    else:
                        cur = conn.execute("DELETE FROM workouts WHERE id = ?;", (workout.id,))
                        if cur.rowcount == 0:
                            raise ValueError("workout not found")
                        applied.append((action, workout, sets, None, []))
        except (sqlite3.Error, ValueError) as e:
            logger.error("workout commit failed: %s", e)
            raise StorageCommitError(str(e)) from e

        for action, workout, sets, wid, set_ids in applied:
            if action == "delete":
                workout.id = None
                continue
            for s, sid in zip(sets, set_ids):
                s.id = sid
            workout.id = wid
            workout.sets = sets
        logger.debug("committed %d workout change(s)", len(applied))

    def delete_all(self) -> None:
        self._delete_all("exercise_sets")
        self._delete_all("workouts")

    def export_csv(self) -> str:
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(["Date", "Exercise", "Exercise ID", "Weight", "Reps"])
        for workout in self.fetch_all_workouts():
            day = self.calendar.day_key(workout.date)
            for s in workout.sets:
                writer.writerow([day, s.exercise_name, s.exercise_id, s.weight, s.reps])
        return output.getvalue()

    def export_json(self) -> str:
        """Return every workout with its sets as a JSON string."""
        return json.dumps([w.to_dict() for w in self.fetch_all_workouts()])


class AsyncWorkoutRepository(AsyncBaseRepository):
    """Async read-side access to workouts."""

    def __init__(self, db_path: str = "workout.db", calendar: LogCalendar | None = None) -> None:
        super().__init__(db_path)
        self.calendar = calendar or LogCalendar()

    async def _hydrate(self, workout_rows: List[Tuple]) -> List[Workout]:
        if not workout_rows:
            return []
        ids = [row[0] for row in workout_rows]
        set_rows = await self.fetch_all(_sets_query(ids), tuple(ids))
        return _build_workouts(list(workout_rows), list(set_rows))

    async def fetch_workouts_in(
        self,
        start: datetime.datetime | datetime.date,
        end: datetime.datetime | datetime.date,
    ) -> List[Workout]:
        rows = await self.fetch_all(
            f"SELECT {_WORKOUT_COLUMNS} FROM workouts WHERE date >= ? AND date < ? ORDER BY date ASC, id ASC;",
            (
                to_storage_instant(self.calendar.normalize(start)),
                to_storage_instant(self.calendar.normalize(end)),
            ),
        )
        return await self._hydrate(list(rows))

    async def fetch_workout(self, on_date: datetime.datetime | datetime.date) -> Optional[Workout]:
        start, end = self.calendar.day_range(on_date)
        workouts = await self.fetch_workouts_in(start, end)
        return workouts[0] if workouts else None

    async def fetch_all_workouts(self) -> List[Workout]:
        rows = await self.fetch_all(
            f"SELECT {_WORKOUT_COLUMNS} FROM workouts ORDER BY date ASC, id ASC;"
        )
        return await self._hydrate(list(rows))


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    def __init__(
        self, db_path: str = "workout.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | str] = {}
        int_keys = {"first_weekday", "initial_set_count"}
        for k, v in rows:
            if k in int_keys:
                try:
                    result[k] = int(float(v))
                    continue
                except ValueError:
                    pass
            result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_text(self, key: str, value: str) -> None:
        data = self._raw_all_settings()
        data[key] = value
        validate_settings(data)
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()

    def calendar(self) -> LogCalendar:
        """Build the day-normalizing calendar from the stored settings."""
        return LogCalendar(
            self.get_text("timezone", "UTC"),
            self.get_int("first_weekday", 0),
        )

from __future__ import annotations

import copy
import datetime
import logging
import uuid
from typing import Callable, Dict, Iterable, List, Optional

from catalog import ExerciseLoader, find_by_id, find_by_name
from db import WorkoutRepository
from errors import CatalogLoadError, StorageCommitError
from log_calendar import LogCalendar
from models import DraftExerciseEntry, DraftSetRow, ExerciseCatalogEntry, ExerciseSet, Workout

logger = logging.getLogger(__name__)

DraftList = List[DraftExerciseEntry]
Listener = Callable[[int], None]


class DraftWorkoutService:
    """Edit unsaved workouts per calendar day and sync them with storage.

    ``draft_exercises`` is the live draft for ``selected_date``. Drafts of
    other days are parked in ``drafts_cache`` when the user navigates away,
    so unsaved edits survive date switches for the lifetime of the service.
    A cached draft always wins over what is stored for that day.

    Draft weights are entered in kilograms, the unit they are stored in;
    ``weight_unit`` only affects how statistics are reported.
    """

    def __init__(
        self,
        workouts: WorkoutRepository,
        calendar: LogCalendar | None = None,
        catalog_path: str | None = None,
        initial_set_count: int = 5,
    ) -> None:
        self.workouts = workouts
        self.calendar = calendar or workouts.calendar
        self.catalog_path = catalog_path
        self.initial_set_count = initial_set_count
        self.selected_date = self.calendar.today()
        self.draft_exercises: DraftList = []
        self.drafts_cache: Dict[datetime.datetime, DraftList] = {}
        self.last_synced_date: Optional[datetime.datetime] = None
        self.is_syncing_drafts = False
        self.draft_revision = 0
        self.exercises_catalog: List[ExerciseCatalogEntry] = []
        self.is_loading_exercises = False
        self.exercise_load_failed = False
        self._listeners: list[Listener] = []

    # observers -----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(revision)`` after every draft mutation."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        self.draft_revision += 1
        for listener in list(self._listeners):
            listener(self.draft_revision)

    # catalog -------------------------------------------------------------

    def load_exercises(self) -> bool:
        """Load the exercise catalog; returns False when loading failed.

        A failed load leaves ``exercise_load_failed`` set so the caller can
        offer a retry, which is simply another call.
        """
        self.is_loading_exercises = True
        self.exercise_load_failed = False
        try:
            self.exercises_catalog = ExerciseLoader.load(self.catalog_path)
        except CatalogLoadError as e:
            logger.error("exercise catalog load error: %s", e)
            self.exercise_load_failed = True
            return False
        finally:
            self.is_loading_exercises = False
        return True

    def exercise_name(self, catalog_id: str) -> Optional[str]:
        item = find_by_id(self.exercises_catalog, catalog_id)
        return item.name if item else None

    # draft lookup --------------------------------------------------------

    def draft_entry(self, entry_id: uuid.UUID) -> Optional[DraftExerciseEntry]:
        for entry in self.draft_exercises:
            if entry.id == entry_id:
                return entry
        return None

    def _row(self, entry_id: uuid.UUID, set_id: uuid.UUID) -> Optional[DraftSetRow]:
        entry = self.draft_entry(entry_id)
        if entry is None:
            return None
        return entry.row(set_id)

    def weight_text(self, entry_id: uuid.UUID, set_id: uuid.UUID) -> str:
        row = self._row(entry_id, set_id)
        return row.weight_text if row else ""

    def reps_text(self, entry_id: uuid.UUID, set_id: uuid.UUID) -> str:
        row = self._row(entry_id, set_id)
        return row.reps_text if row else ""

    def draft_volume(self, entry_id: uuid.UUID) -> float:
        entry = self.draft_entry(entry_id)
        return entry.current_volume if entry else 0.0

    @property
    def has_valid_sets(self) -> bool:
        return any(row.is_valid for entry in self.draft_exercises for row in entry.sets)

    def build_exercise_sets(self) -> List[ExerciseSet]:
        """Flatten every valid row of the draft; invalid rows are dropped."""
        result: List[ExerciseSet] = []
        for entry in self.draft_exercises:
            result.extend(entry.exercise_sets())
        return result

    # date navigation -----------------------------------------------------

    def start_new_workout(self) -> None:
        self.selected_date = self.calendar.normalize(self.selected_date)
        self.draft_exercises.clear()
        self._changed()

    def switch_selected_date(self, new_date: datetime.datetime | datetime.date) -> None:
        if self.is_syncing_drafts:
            logger.debug("date switch to %s ignored, sync in progress", new_date)
            return
        previous = self.selected_date
        self.selected_date = self.calendar.normalize(new_date)
        try:
            self.sync_drafts_for_selected_date()
        except Exception:
            # the live draft still belongs to the previous day
            self.selected_date = previous
            raise

    def sync_drafts_for_selected_date(self) -> None:
        """Park the current draft, then load the draft for ``selected_date``.

        Overlapping calls are ignored rather than queued. If loading fails the
        current draft and ``last_synced_date`` are left in place.
        """
        if self.is_syncing_drafts:
            return
        self.is_syncing_drafts = True
        try:
            new_date = self.calendar.normalize(self.selected_date)
            if self.last_synced_date is not None:
                self._flush(self.last_synced_date)
            drafts = self._load(new_date)
            self.draft_exercises = drafts
            self.last_synced_date = new_date
        finally:
            self.is_syncing_drafts = False
        self._changed()

    def _flush(self, day: datetime.datetime) -> None:
        self.drafts_cache[self.calendar.normalize(day)] = copy.deepcopy(self.draft_exercises)

    def _load(self, day: datetime.datetime) -> DraftList:
        cached = self.drafts_cache.get(day)
        if cached is not None:
            logger.debug("draft cache hit for %s", day.date())
            return copy.deepcopy(cached)
        workout = self.workouts.fetch_workout(day)
        return self._drafts_from_workout(workout) if workout else []

    @staticmethod
    def _drafts_from_workout(workout: Workout) -> DraftList:
        # grouped by display name, so renamed catalog entries stay separate
        grouped: Dict[str, List[ExerciseSet]] = {}
        for s in workout.sets:
            grouped.setdefault(s.exercise_name, []).append(s)
        entries = [
            DraftExerciseEntry(
                exercise_name=name,
                sets=[DraftSetRow.from_exercise_set(s) for s in sets],
                exercise_id=sets[0].exercise_id,
            )
            for name, sets in grouped.items()
        ]
        return sorted(entries, key=lambda e: e.exercise_name)

    # draft edits ---------------------------------------------------------

    def append_exercise(
        self,
        name: str,
        initial_set_count: int | None = None,
        exercise_id: str | None = None,
    ) -> DraftExerciseEntry:
        if initial_set_count is None:
            initial_set_count = self.initial_set_count
        if exercise_id is None:
            item = find_by_name(self.exercises_catalog, name)
            exercise_id = item.id if item else None
        entry = DraftExerciseEntry.with_empty_rows(name, initial_set_count, exercise_id)
        self.draft_exercises.append(entry)
        self._changed()
        return entry

    def add_set_row(self, entry_id: uuid.UUID) -> Optional[DraftSetRow]:
        entry = self.draft_entry(entry_id)
        if entry is None:
            return None
        row = DraftSetRow()
        entry.sets.append(row)
        self._changed()
        return row

    def remove_set_row(self, entry_id: uuid.UUID, set_id: uuid.UUID) -> None:
        entry = self.draft_entry(entry_id)
        if entry is None:
            return
        entry.sets = [row for row in entry.sets if row.id != set_id]
        self._changed()

    def remove_draft_exercise(self, entry_id: uuid.UUID) -> None:
        self.draft_exercises = [e for e in self.draft_exercises if e.id != entry_id]
        self._changed()

    def remove_draft_exercises_at(self, offsets: Iterable[int]) -> None:
        drop = set(offsets)
        if any(i < 0 or i >= len(self.draft_exercises) for i in drop):
            raise IndexError("draft exercise offset out of range")
        self.draft_exercises = [e for i, e in enumerate(self.draft_exercises) if i not in drop]
        self._changed()

    def move_draft_exercises(self, source: Iterable[int], destination: int) -> None:
        """Move the entries at ``source`` so they land before ``destination``.

        ``destination`` indexes the list as it was before the move, so moving
        item 0 to the end of a three item list uses destination 3.
        """
        offsets = sorted(set(source))
        size = len(self.draft_exercises)
        if any(i < 0 or i >= size for i in offsets) or not 0 <= destination <= size:
            raise IndexError("draft exercise offset out of range")
        moved = [self.draft_exercises[i] for i in offsets]
        kept = [e for i, e in enumerate(self.draft_exercises) if i not in offsets]
        insert_at = destination - sum(1 for i in offsets if i < destination)
        self.draft_exercises = kept[:insert_at] + moved + kept[insert_at:]
        self._changed()

    def update_set_row(
        self, entry_id: uuid.UUID, set_id: uuid.UUID, weight_text: str, reps_text: str
    ) -> None:
        row = self._row(entry_id, set_id)
        if row is None:
            return
        row.weight_text = weight_text
        row.reps_text = reps_text
        self._changed()

    # persistence ---------------------------------------------------------

    def save_workout(self) -> Optional[Workout]:
        """Write the draft for ``selected_date`` through to storage.

        Returns the stored workout, or None when the day ended up without one.
        Raises :class:`StorageCommitError` if the write fails; the draft and
        the cache are left exactly as they were.
        """
        saved_sets = self.build_exercise_sets()
        day = self.calendar.normalize(self.selected_date)
        existing = self.workouts.fetch_workout(day)

        if not saved_sets:
            if existing is None:
                return None
            self.workouts.delete(existing)
            self._commit(day)
            logger.debug("deleted workout for %s", day.date())
            return None

        if existing is not None:
            self.workouts.replace_sets(existing, saved_sets)
            workout = existing
        else:
            workout = Workout(date=day, note="", sets=saved_sets, timezone=self.calendar.timezone)
            self.workouts.insert(workout)
        self._commit(day)
        logger.debug("saved %d set(s) for %s", len(saved_sets), day.date())
        return workout

    def _commit(self, day: datetime.datetime) -> None:
        try:
            self.workouts.commit()
        except StorageCommitError:
            self.workouts.rollback()
            logger.exception("workout save failed for %s", day.date())
            raise
        self.drafts_cache[day] = copy.deepcopy(self.draft_exercises)

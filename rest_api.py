import logging
import uuid
from typing import List

from fastapi import FastAPI, HTTPException, APIRouter, Query

from catalog import ExerciseIndex, SearchFilters
from config import APP_VERSION
from db import WorkoutRepository, SettingsRepository
from draft_service import DraftWorkoutService
from errors import StorageCommitError
from algorithms.activity_metrics import ActivityMetrics
from stats_service import StatisticsService


class TrainLogAPI:
    """Provides REST endpoints for the draft workout editor and statistics."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
        catalog_path: str | None = None,
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.calendar = self.settings.calendar()
        self.workouts = WorkoutRepository(db_path, self.calendar)
        self.drafts = DraftWorkoutService(
            self.workouts,
            self.calendar,
            catalog_path=catalog_path or self.settings.get_text("catalog_path", "") or None,
            initial_set_count=self.settings.get_int("initial_set_count", 5),
        )
        self.statistics = StatisticsService(
            self.workouts,
            self.calendar,
            weight_unit=self.settings.get_text("weight_unit", "kg"),
        )
        self.index = ExerciseIndex([])
        self.reload_exercises()
        self.drafts.sync_drafts_for_selected_date()
        self.app = FastAPI(
            title="TrainLog API",
            description="REST API for draft workout logging and activity statistics",
            version=APP_VERSION,
        )
        self._setup_routes()

    def reload_exercises(self) -> bool:
        loaded = self.drafts.load_exercises()
        if loaded:
            self.index = ExerciseIndex(self.drafts.exercises_catalog)
        return loaded

    def _require_catalog(self) -> None:
        if self.drafts.exercise_load_failed:
            raise HTTPException(status_code=503, detail="exercise catalog failed to load")

    def _parse_day(self, text: str):
        try:
            return self.calendar.parse_day(text)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    def _entry(self, entry_id: uuid.UUID):
        entry = self.drafts.draft_entry(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="draft exercise not found")
        return entry

    def draft_state(self) -> dict:
        return {
            "date": self.calendar.day_key(self.drafts.selected_date),
            "revision": self.drafts.draft_revision,
            "has_valid_sets": self.drafts.has_valid_sets,
            "exercises": [e.to_dict() for e in self.drafts.draft_exercises],
        }

    def _points(self, points) -> List[dict]:
        return ActivityMetrics.labelled(points, self.calendar)

    def _setup_routes(self) -> None:
        draft_router = APIRouter(prefix="/draft", tags=["Draft"])
        stats_router = APIRouter(prefix="/stats", tags=["Statistics"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.workouts.fetch_all("SELECT 1;")
                return {
                    "status": "ok",
                    "version": APP_VERSION,
                    "catalog_loaded": not self.drafts.exercise_load_failed,
                }
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @self.app.get("/exercises")
        def list_exercises():
            self._require_catalog()
            english = self.settings.get_text("language", "en") == "en"
            return [
                {"display_name": item.display_name(english), **item.to_dict()}
                for item in self.drafts.exercises_catalog
            ]

        @self.app.get("/exercises/search")
        def search_exercises(
            query: str = "",
            muscle_group: str = None,
            equipment: str = None,
            limit: int = 20,
        ):
            self._require_catalog()
            filters = SearchFilters(
                muscle_group=set(muscle_group.split("|")) if muscle_group else set(),
                equipment=set(equipment.split("|")) if equipment else set(),
            )
            return [
                {"score": r.score, **r.item.to_dict()}
                for r in self.index.search(query, filters, limit)
            ]

        @self.app.post("/exercises/reload")
        def reload_exercises():
            if not self.reload_exercises():
                raise HTTPException(status_code=503, detail="exercise catalog failed to load")
            return {"count": len(self.drafts.exercises_catalog)}

        @self.app.get("/exercises/{exercise_id}/name")
        def exercise_name(exercise_id: str):
            name = self.drafts.exercise_name(exercise_id)
            if name is None:
                raise HTTPException(status_code=404, detail="exercise not found")
            return {"id": exercise_id, "name": name}

        @draft_router.get("")
        def get_draft():
            return self.draft_state()

        @draft_router.post("/date")
        def select_date(date: str):
            self.drafts.switch_selected_date(self._parse_day(date))
            return self.draft_state()

        @draft_router.post("/new")
        def new_workout():
            self.drafts.start_new_workout()
            return self.draft_state()

        @draft_router.post("/exercises")
        def append_exercise(name: str, sets: int = None, exercise_id: str = None):
            if sets is not None and sets < 0:
                raise HTTPException(status_code=400, detail="sets must be non-negative")
            entry = self.drafts.append_exercise(name, sets, exercise_id)
            return entry.to_dict()

        @draft_router.delete("/exercises/{entry_id}")
        def remove_exercise(entry_id: uuid.UUID):
            self._entry(entry_id)
            self.drafts.remove_draft_exercise(entry_id)
            return {"status": "deleted"}

        @draft_router.post("/exercises/move")
        def move_exercises(source: str = Query(...), destination: int = Query(...)):
            try:
                offsets = [int(i) for i in source.split("|") if i]
                self.drafts.move_draft_exercises(offsets, destination)
            except (ValueError, IndexError) as e:
                raise HTTPException(status_code=400, detail=str(e))
            return self.draft_state()

        @draft_router.post("/exercises/remove")
        def remove_exercises_at(offsets: str = Query(...)):
            try:
                self.drafts.remove_draft_exercises_at(int(i) for i in offsets.split("|") if i)
            except (ValueError, IndexError) as e:
                raise HTTPException(status_code=400, detail=str(e))
            return self.draft_state()

        @draft_router.post("/exercises/{entry_id}/sets")
        def add_set_row(entry_id: uuid.UUID):
            self._entry(entry_id)
            row = self.drafts.add_set_row(entry_id)
            return row.to_dict()

        @draft_router.put("/exercises/{entry_id}/sets/{set_id}")
        def update_set_row(entry_id: uuid.UUID, set_id: uuid.UUID, weight: str = "", reps: str = ""):
            if self._entry(entry_id).row(set_id) is None:
                raise HTTPException(status_code=404, detail="set not found")
            self.drafts.update_set_row(entry_id, set_id, weight, reps)
            return {
                "weight": self.drafts.weight_text(entry_id, set_id),
                "reps": self.drafts.reps_text(entry_id, set_id),
            }

        @draft_router.delete("/exercises/{entry_id}/sets/{set_id}")
        def remove_set_row(entry_id: uuid.UUID, set_id: uuid.UUID):
            self.drafts.remove_set_row(entry_id, set_id)
            return {"status": "deleted"}

        @draft_router.get("/exercises/{entry_id}/trend")
        def volume_trend(entry_id: uuid.UUID, limit: int = 4):
            entry = self._entry(entry_id)
            points = self.statistics.volume_trend(
                entry.exercise_name,
                self.drafts.selected_date,
                entry.current_volume,
                limit,
            )
            return self._points(points)

        @draft_router.post("/save")
        def save_draft():
            try:
                workout = self.drafts.save_workout()
            except StorageCommitError as e:
                raise HTTPException(status_code=500, detail=str(e))
            return {"saved": workout is not None, "workout": workout.to_dict() if workout else None}

        @self.app.get("/workouts")
        def list_workouts(start: str = None, end: str = None):
            if start and end:
                rows = self.workouts.fetch_workouts_in(self._parse_day(start), self._parse_day(end))
            else:
                rows = self.workouts.fetch_all_workouts()
            return [w.to_dict() for w in rows]

        @self.app.get("/workouts/{day}")
        def get_workout(day: str):
            workout = self.workouts.fetch_workout(self._parse_day(day))
            if workout is None:
                raise HTTPException(status_code=404, detail="workout not found")
            return workout.to_dict()

        @stats_router.get("/daily_counts")
        def daily_counts(start: str, end: str):
            counts = self.statistics.daily_counts(self._parse_day(start), self._parse_day(end))
            return {self.calendar.day_key(d): c for d, c in sorted(counts.items())}

        @stats_router.get("/previous_volumes")
        def previous_volumes(exercise: str, before: str, limit: int = 4):
            points = self.statistics.previous_volumes(exercise, self._parse_day(before), limit)
            return self._points(points)

        @stats_router.get("/muscle_share")
        def muscle_share(year: int, month: int):
            self._require_catalog()
            if not 1 <= month <= 12:
                raise HTTPException(status_code=400, detail="month must be between 1 and 12")
            share = self.statistics.muscle_group_share(self.drafts.exercises_catalog, year, month)
            return [{"muscle_group": g, "count": c} for g, c in share]

        @stats_router.get("/heatmap/{year}")
        def heatmap(year: int):
            counts = self.statistics.year_heatmap(year)
            return [
                {
                    "date": self.calendar.day_key(d),
                    "count": c,
                    "tier": ActivityMetrics.heatmap_tier(c),
                }
                for d, c in sorted(counts.items())
            ]

        @stats_router.get("/summary/{year}")
        def year_summary(year: int):
            return self.statistics.year_summary(year)

        @stats_router.get("/years")
        def years():
            return self.statistics.available_years()

        @stats_router.get("/exercise_series")
        def exercise_series(exercise_id: str, period: str = "week"):
            if period not in ActivityMetrics.PERIODS:
                raise HTTPException(status_code=400, detail=f"unknown period: {period}")
            return self._points(self.statistics.exercise_series(exercise_id, period))

        self.app.include_router(draft_router)
        self.app.include_router(stats_router)


api = TrainLogAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app)

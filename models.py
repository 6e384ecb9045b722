"""Value types shared by the draft engine, the store and the metrics.

``Workout`` and ``ExerciseSet`` mirror what is persisted in SQLite.
``DraftExerciseEntry`` and ``DraftSetRow`` only live in memory while a
workout is being edited; their ids are never written to storage.
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from algorithms.math_tools import MathTools


@dataclass
class ExerciseSet:
    exercise_name: str
    exercise_id: str
    weight: float
    reps: int
    id: Optional[int] = None

    @property
    def volume(self) -> float:
        return self.weight * self.reps

    def to_dict(self) -> dict:
        return {
            "exercise_name": self.exercise_name,
            "exercise_id": self.exercise_id,
            "weight": self.weight,
            "reps": self.reps,
        }


@dataclass
class Workout:
    date: datetime.datetime
    note: str = ""
    sets: List[ExerciseSet] = field(default_factory=list)
    id: Optional[int] = None
    timezone: str = "UTC"

    @property
    def total_volume(self) -> float:
        return MathTools.volume((s.reps, s.weight) for s in self.sets)

    def exercise_ids(self) -> set[str]:
        return {s.exercise_id for s in self.sets}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "timezone": self.timezone,
            "note": self.note,
            "sets": [s.to_dict() for s in self.sets],
        }


@dataclass(frozen=True)
class ExerciseCatalogEntry:
    id: str
    name: str
    name_en: str
    muscle_group: str
    equipment: str = ""
    pattern: str = ""
    aliases: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseCatalogEntry":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            name_en=str(data.get("nameEn", data.get("name_en", ""))),
            muscle_group=str(data["muscleGroup"] if "muscleGroup" in data else data["muscle_group"]),
            equipment=str(data.get("equipment", "")),
            pattern=str(data.get("pattern", "")),
            aliases=tuple(str(a) for a in data.get("aliases", [])),
        )

    def display_name(self, english: bool = False) -> str:
        if english and self.name_en:
            return self.name_en
        return self.name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_en": self.name_en,
            "muscle_group": self.muscle_group,
            "equipment": self.equipment,
            "pattern": self.pattern,
            "aliases": list(self.aliases),
        }


@dataclass
class DraftSetRow:
    """One editable set row; weight and reps are kept as typed text."""

    weight_text: str = ""
    reps_text: str = ""
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def is_valid(self) -> bool:
        return (
            MathTools.parse_int(self.weight_text) is not None
            and MathTools.parse_int(self.reps_text) is not None
        )

    def to_exercise_set(self, exercise_name: str, exercise_id: str) -> Optional[ExerciseSet]:
        weight = MathTools.parse_int(self.weight_text)
        reps = MathTools.parse_int(self.reps_text)
        if weight is None or reps is None:
            return None
        return ExerciseSet(
            exercise_name=exercise_name,
            exercise_id=exercise_id,
            weight=float(weight),
            reps=reps,
        )

    @classmethod
    def from_exercise_set(cls, exercise_set: ExerciseSet) -> "DraftSetRow":
        weight = MathTools.round_half_away_from_zero(exercise_set.weight)
        return cls(weight_text=str(weight), reps_text=str(exercise_set.reps))

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "weight": self.weight_text,
            "reps": self.reps_text,
            "valid": self.is_valid,
        }


@dataclass
class DraftExerciseEntry:
    exercise_name: str
    sets: List[DraftSetRow] = field(default_factory=list)
    exercise_id: Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def with_empty_rows(
        cls, exercise_name: str, count: int = 5, exercise_id: Optional[str] = None
    ) -> "DraftExerciseEntry":
        if count < 0:
            raise ValueError("set count must be non-negative")
        return cls(
            exercise_name=exercise_name,
            sets=[DraftSetRow() for _ in range(count)],
            exercise_id=exercise_id,
        )

    def exercise_sets(self) -> List[ExerciseSet]:
        # sets logged without a catalog id fall back to the display name
        key = self.exercise_id or self.exercise_name
        result = []
        for row in self.sets:
            converted = row.to_exercise_set(self.exercise_name, key)
            if converted is not None:
                result.append(converted)
        return result

    @property
    def completed_set_count(self) -> int:
        return sum(1 for row in self.sets if row.is_valid)

    @property
    def current_volume(self) -> float:
        """Volume of rows typed so far; decimal weights count here."""
        vol = 0.0
        for row in self.sets:
            weight = MathTools.parse_number(row.weight_text)
            reps = MathTools.parse_int(row.reps_text)
            if weight is None or reps is None:
                continue
            vol += weight * reps
        return vol

    def row(self, set_id: uuid.UUID) -> Optional[DraftSetRow]:
        for row in self.sets:
            if row.id == set_id:
                return row
        return None

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "exercise_name": self.exercise_name,
            "exercise_id": self.exercise_id,
            "sets": [row.to_dict() for row in self.sets],
            "completed_sets": self.completed_set_count,
        }

"""Workout session value types."""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from lifter.models.exercise_models import Exercise
from lifter.utils import from_iso, generate_id, to_iso


@dataclass(frozen=True)
class ExerciseSet:
    id: str
    reps: Optional[int] = None
    weight: Optional[float] = None
    is_completed: bool = False
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "reps": self.reps,
            "weight": self.weight,
            "is_completed": self.is_completed,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExerciseSet":
        return cls(
            id=data["id"],
            reps=data.get("reps"),
            weight=data.get("weight"),
            is_completed=data.get("is_completed", False),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class WorkoutExercise:
    """An exercise as performed within one session."""
    id: str
    exercise: Exercise
    sets: Tuple[ExerciseSet, ...] = ()
    rest_time_seconds: int = 90
    notes: Optional[str] = None

    @property
    def completed_sets_count(self) -> int:
        return sum(1 for s in self.sets if s.is_completed)

    @property
    def is_completed(self) -> bool:
        return bool(self.sets) and self.completed_sets_count == len(self.sets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "exercise": self.exercise.to_dict(),
            "sets": [s.to_dict() for s in self.sets],
            "rest_time_seconds": self.rest_time_seconds,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkoutExercise":
        return cls(
            id=data["id"],
            exercise=Exercise.from_dict(data["exercise"]),
            sets=tuple(ExerciseSet.from_dict(s) for s in data.get("sets", [])),
            rest_time_seconds=data.get("rest_time_seconds", 90),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class WorkoutSession:
    """A single workout, scheduled or performed."""
    id: str
    date: datetime
    program_id: Optional[str] = None
    program_name: Optional[str] = None
    exercises: Tuple[WorkoutExercise, ...] = ()
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def create(cls, date: datetime, **kwargs: Any) -> "WorkoutSession":
        return cls(id=generate_id(), date=date, **kwargs)

    @property
    def duration(self) -> Optional[timedelta]:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def is_in_progress(self) -> bool:
        return self.start_time is not None and self.end_time is None

    @property
    def is_completed(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def completed_exercises_count(self) -> int:
        return sum(1 for e in self.exercises if e.is_completed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": to_iso(self.date),
            "program_id": self.program_id,
            "program_name": self.program_name,
            "exercises": [e.to_dict() for e in self.exercises],
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "notes": self.notes,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkoutSession":
        return cls(
            id=data["id"],
            date=from_iso(data["date"]),
            program_id=data.get("program_id"),
            program_name=data.get("program_name"),
            exercises=tuple(WorkoutExercise.from_dict(e) for e in data.get("exercises", [])),
            start_time=from_iso(data.get("start_time")),
            end_time=from_iso(data.get("end_time")),
            notes=data.get("notes"),
            metadata=dict(data.get("metadata") or {}),
        )

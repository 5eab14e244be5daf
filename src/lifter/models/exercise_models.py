"""Exercise and user preference value types."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from lifter.models.enums import ExerciseCategory, MuscleGroup
from lifter.utils import from_iso, generate_id, to_iso, utc_now


@dataclass(frozen=True)
class Exercise:
    """An exercise definition, either built in or created by the user."""
    id: str
    name: str
    category: ExerciseCategory
    target_muscle_groups: Tuple[MuscleGroup, ...] = ()
    default_sets: int = 3
    default_reps: int = 10
    default_weight: Optional[float] = None
    default_rest_time_seconds: int = 90
    short_name: Optional[str] = None
    notes: Optional[str] = None
    instructions: Optional[str] = None
    image_url: Optional[str] = None
    is_default: bool = False
    author_id: Optional[str] = None

    @classmethod
    def create(cls, name: str, category: ExerciseCategory, **kwargs: Any) -> "Exercise":
        """Create a custom exercise with a generated id."""
        return cls(id=generate_id(), name=name, category=category, **kwargs)

    @property
    def display_name(self) -> str:
        return self.short_name or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "target_muscle_groups": [group.value for group in self.target_muscle_groups],
            "default_sets": self.default_sets,
            "default_reps": self.default_reps,
            "default_weight": self.default_weight,
            "default_rest_time_seconds": self.default_rest_time_seconds,
            "short_name": self.short_name,
            "notes": self.notes,
            "instructions": self.instructions,
            "image_url": self.image_url,
            "is_default": self.is_default,
            "author_id": self.author_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Exercise":
        return cls(
            id=data["id"],
            name=data["name"],
            category=ExerciseCategory(data.get("category", ExerciseCategory.OTHER.value)),
            target_muscle_groups=tuple(MuscleGroup(g) for g in data.get("target_muscle_groups", [])),
            default_sets=data.get("default_sets", 3),
            default_reps=data.get("default_reps", 10),
            default_weight=data.get("default_weight"),
            default_rest_time_seconds=data.get("default_rest_time_seconds", 90),
            short_name=data.get("short_name"),
            notes=data.get("notes"),
            instructions=data.get("instructions"),
            image_url=data.get("image_url"),
            is_default=data.get("is_default", False),
            author_id=data.get("author_id"),
        )


@dataclass(frozen=True)
class UserExercisePreferences:
    """User overrides for an exercise, keyed by the exercise id."""
    id: str
    exercise_id: str
    created_at: datetime
    updated_at: datetime
    preferred_sets: Optional[int] = None
    preferred_reps: Optional[int] = None
    preferred_weight: Optional[float] = None
    preferred_rest_time_seconds: Optional[int] = None
    user_notes: Optional[str] = None
    local_photo_paths: Tuple[str, ...] = field(default_factory=tuple)
    cloud_photo_urls: Tuple[str, ...] = field(default_factory=tuple)
    pending_photo_uploads: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def create(cls, exercise_id: str, now: Optional[datetime] = None, **kwargs: Any) -> "UserExercisePreferences":
        """Create preferences with a generated id and both timestamps set to now."""
        now = now or utc_now()
        return cls(id=generate_id(), exercise_id=exercise_id, created_at=now, updated_at=now, **kwargs)

    @property
    def has_overrides(self) -> bool:
        return any(
            value is not None
            for value in (
                self.preferred_sets,
                self.preferred_reps,
                self.preferred_weight,
                self.preferred_rest_time_seconds,
            )
        )

    def with_changes(self, now: Optional[datetime] = None, **changes: Any) -> "UserExercisePreferences":
        """Return a copy with the given fields changed and ``updated_at`` bumped."""
        return replace(self, updated_at=now or utc_now(), **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "exercise_id": self.exercise_id,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "preferred_sets": self.preferred_sets,
            "preferred_reps": self.preferred_reps,
            "preferred_weight": self.preferred_weight,
            "preferred_rest_time_seconds": self.preferred_rest_time_seconds,
            "user_notes": self.user_notes,
            "local_photo_paths": list(self.local_photo_paths),
            "cloud_photo_urls": list(self.cloud_photo_urls),
            "pending_photo_uploads": list(self.pending_photo_uploads),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserExercisePreferences":
        return cls(
            id=data["id"],
            exercise_id=data["exercise_id"],
            created_at=from_iso(data["created_at"]),
            updated_at=from_iso(data["updated_at"]),
            preferred_sets=data.get("preferred_sets"),
            preferred_reps=data.get("preferred_reps"),
            preferred_weight=data.get("preferred_weight"),
            preferred_rest_time_seconds=data.get("preferred_rest_time_seconds"),
            user_notes=data.get("user_notes"),
            local_photo_paths=tuple(data.get("local_photo_paths", [])),
            cloud_photo_urls=tuple(data.get("cloud_photo_urls", [])),
            pending_photo_uploads=tuple(data.get("pending_photo_uploads", [])),
        )

"""Enumerations shared by the exercise, workout and program models."""
from enum import Enum


class ExerciseCategory(str, Enum):
    STRENGTH = "strength"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    BALANCE = "balance"
    ENDURANCE = "endurance"
    SPORTS = "sports"
    OTHER = "other"


class MuscleGroup(str, Enum):
    CHEST = "chest"
    TRICEPS = "triceps"
    SHOULDERS = "shoulders"
    LATS = "lats"
    BACK = "back"
    LOWER_BACK = "lowerBack"
    TRAPS = "traps"
    BICEPS = "biceps"
    FOREARMS = "forearms"
    QUADRICEPS = "quadriceps"
    GLUTES = "glutes"
    HAMSTRINGS = "hamstrings"
    CALVES = "calves"
    CORE = "core"
    FULL_BODY = "fullBody"
    CARDIOVASCULAR = "cardiovascular"


class ProgramDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class ProgramType(str, Enum):
    STRENGTH = "strength"
    HYPERTROPHY = "hypertrophy"
    POWERLIFTING = "powerlifting"
    BODYBUILDING = "bodybuilding"
    CARDIO = "cardio"
    HIIT = "hiit"
    FLEXIBILITY = "flexibility"
    GENERAL = "general"
    SPORT = "sport"
    REHABILITATION = "rehabilitation"


class PeriodicityType(str, Enum):
    WEEKLY = "weekly"  # specific days of the week
    CYCLIC = "cyclic"  # N days on, M days off
    INTERVAL = "interval"  # every N days
    CUSTOM = "custom"


class CycleState(str, Enum):
    """Effective state of a program cycle derived from its flags."""
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"

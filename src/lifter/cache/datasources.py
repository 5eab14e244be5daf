"""Local datasources for exercises, preferences, programs and workout sessions.

These sit between the repository layer and the cache collections. They own
the key normalization policy: exercise ids (for custom exercises and for
preferences) are lower-cased before every write and every read, so lookups
are case-insensitive here even though the collections match keys exactly.
Program and workout session ids are used as given.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from lifter.cache.collection import (
    DEFAULT_CACHE_MAX_AGE,
    CacheCollection,
    Clock,
    DurableCacheCollection,
    InMemoryCacheCollection,
)
from lifter.config import settings
from lifter.models.exercise_models import Exercise, UserExercisePreferences
from lifter.models.program_models import Program
from lifter.models.workout_models import WorkoutSession
from lifter.storage.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)


def normalize_exercise_id(exercise_id: str) -> str:
    return exercise_id.lower()


class ExerciseLocalDataSource:
    """Cache of custom exercises and user exercise preferences."""

    def __init__(
        self,
        custom_exercises: CacheCollection[Exercise],
        preferences: CacheCollection[UserExercisePreferences],
    ):
        self.custom_exercises = custom_exercises
        self.preferences = preferences

    # Custom exercises

    async def get_cached_custom_exercises(self) -> List[Exercise]:
        return await self.custom_exercises.get_all()

    async def get_cached_custom_exercise_by_id(self, exercise_id: str) -> Optional[Exercise]:
        return await self.custom_exercises.get_by_id(normalize_exercise_id(exercise_id))

    async def cache_custom_exercise(self, exercise: Exercise) -> None:
        await self.custom_exercises.put(exercise)

    async def cache_custom_exercises(self, exercises: List[Exercise]) -> None:
        await self.custom_exercises.put_many(exercises)

    async def remove_custom_exercise(self, exercise_id: str) -> None:
        await self.custom_exercises.remove(normalize_exercise_id(exercise_id))

    async def clear_custom_exercises_cache(self) -> None:
        await self.custom_exercises.clear()

    async def get_last_custom_exercises_cache_update(self) -> Optional[datetime]:
        return await self.custom_exercises.get_last_update()

    async def is_custom_exercises_cache_expired(self, max_age: timedelta = DEFAULT_CACHE_MAX_AGE) -> bool:
        return await self.custom_exercises.is_expired(max_age)

    # Preferences

    async def get_cached_preferences(self) -> List[UserExercisePreferences]:
        return await self.preferences.get_all()

    async def get_cached_preference_for_exercise(self, exercise_id: str) -> Optional[UserExercisePreferences]:
        return await self.preferences.get_by_id(normalize_exercise_id(exercise_id))

    async def cache_preference(self, preference: UserExercisePreferences) -> None:
        await self.preferences.put(preference)

    async def cache_preferences(self, preferences: List[UserExercisePreferences]) -> None:
        await self.preferences.put_many(preferences)

    async def remove_preference(self, exercise_id: str) -> None:
        await self.preferences.remove(normalize_exercise_id(exercise_id))

    async def clear_preferences_cache(self) -> None:
        await self.preferences.clear()

    async def get_last_preferences_cache_update(self) -> Optional[datetime]:
        return await self.preferences.get_last_update()

    async def is_preferences_cache_expired(self, max_age: timedelta = DEFAULT_CACHE_MAX_AGE) -> bool:
        return await self.preferences.is_expired(max_age)

    async def clear_all_caches(self) -> None:
        await self.custom_exercises.clear()
        await self.preferences.clear()


class ProgramLocalDataSource:
    """Cache of programs (with their cycles) and workout sessions."""

    def __init__(
        self,
        programs: CacheCollection[Program],
        workout_sessions: CacheCollection[WorkoutSession],
    ):
        self.programs = programs
        self.workout_sessions = workout_sessions

    # Programs

    async def get_cached_programs(self) -> List[Program]:
        return await self.programs.get_all()

    async def get_cached_program_by_id(self, program_id: str) -> Optional[Program]:
        return await self.programs.get_by_id(program_id)

    async def cache_program(self, program: Program) -> None:
        await self.programs.put(program)

    async def cache_programs(self, programs: List[Program]) -> None:
        await self.programs.put_many(programs)

    async def remove_cached_program(self, program_id: str) -> None:
        await self.programs.remove(program_id)

    async def clear_cache(self) -> None:
        await self.programs.clear()

    async def get_last_cache_update(self) -> Optional[datetime]:
        return await self.programs.get_last_update()

    async def is_cache_expired(self, max_age: timedelta = DEFAULT_CACHE_MAX_AGE) -> bool:
        return await self.programs.is_expired(max_age)

    # Workout sessions

    async def get_all_workout_sessions(self) -> List[WorkoutSession]:
        return await self.workout_sessions.get_all()

    async def get_workout_session_by_id(self, session_id: str) -> Optional[WorkoutSession]:
        return await self.workout_sessions.get_by_id(session_id)

    async def save_workout_session(self, session: WorkoutSession) -> None:
        await self.workout_sessions.put(session)

    async def save_workout_sessions(self, sessions: List[WorkoutSession]) -> None:
        await self.workout_sessions.put_many(sessions)

    async def delete_workout_session(self, session_id: str) -> None:
        await self.workout_sessions.remove(session_id)

    async def clear_workout_sessions(self) -> None:
        await self.workout_sessions.clear()

    async def get_last_workout_sessions_update(self) -> Optional[datetime]:
        return await self.workout_sessions.get_last_update()

    async def is_workout_sessions_cache_expired(self, max_age: timedelta = DEFAULT_CACHE_MAX_AGE) -> bool:
        return await self.workout_sessions.is_expired(max_age)


@dataclass
class LocalDataSources:
    """The datasources built for one cache backend."""
    exercises: ExerciseLocalDataSource
    programs: ProgramLocalDataSource

    @property
    def collections(self) -> List[CacheCollection]:
        return [
            self.exercises.custom_exercises,
            self.exercises.preferences,
            self.programs.programs,
            self.programs.workout_sessions,
        ]


def _exercise_key(exercise: Exercise) -> str:
    return normalize_exercise_id(exercise.id)


def _preference_key(preference: UserExercisePreferences) -> str:
    return normalize_exercise_id(preference.exercise_id)


def _entity_id(entity) -> str:
    return entity.id


def build_durable_datasources(store: KeyValueStore, clock: Optional[Clock] = None) -> LocalDataSources:
    """Build datasources persisted in ``store`` with namespaces from settings."""
    cache = settings.cache
    logger.info(f"Building durable cache datasources over {type(store).__name__}")
    return LocalDataSources(
        exercises=ExerciseLocalDataSource(
            custom_exercises=DurableCacheCollection(
                store, cache.custom_exercises_namespace, _exercise_key,
                Exercise.to_dict, Exercise.from_dict, clock, cache.timestamp_prefix,
            ),
            preferences=DurableCacheCollection(
                store, cache.preferences_namespace, _preference_key,
                UserExercisePreferences.to_dict, UserExercisePreferences.from_dict, clock, cache.timestamp_prefix,
            ),
        ),
        programs=ProgramLocalDataSource(
            programs=DurableCacheCollection(
                store, cache.programs_namespace, _entity_id,
                Program.to_dict, Program.from_dict, clock, cache.timestamp_prefix,
            ),
            workout_sessions=DurableCacheCollection(
                store, cache.workout_sessions_namespace, _entity_id,
                WorkoutSession.to_dict, WorkoutSession.from_dict, clock, cache.timestamp_prefix,
            ),
        ),
    )


def build_in_memory_datasources(clock: Optional[Clock] = None) -> LocalDataSources:
    """Build volatile datasources; every call returns independent state."""
    cache = settings.cache
    return LocalDataSources(
        exercises=ExerciseLocalDataSource(
            custom_exercises=InMemoryCacheCollection(cache.custom_exercises_namespace, _exercise_key, clock),
            preferences=InMemoryCacheCollection(cache.preferences_namespace, _preference_key, clock),
        ),
        programs=ProgramLocalDataSource(
            programs=InMemoryCacheCollection(cache.programs_namespace, _entity_id, clock),
            workout_sessions=InMemoryCacheCollection(cache.workout_sessions_namespace, _entity_id, clock),
        ),
    )

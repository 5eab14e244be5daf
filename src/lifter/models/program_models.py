"""Program and program cycle value types.

``Program`` owns an ordered tuple of ``ProgramCycle`` values. Both types are
frozen: every operation that changes a program returns a new ``Program`` and
leaves the original untouched, so callers must carry the returned value
forward.

Cycle timeline rules enforced here:

* no two cycles of a program have overlapping ``[start_date, end_date]``
  ranges (both ends inclusive, an open ``end_date`` extends indefinitely);
* cycle numbers start at 1 and grow with each created cycle;
* a cycle is activated only on a date inside its range and never after it has
  been completed;
* activating a cycle deactivates every other cycle, so a program has at most
  one active cycle.
"""
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from lifter.errors import (
    CycleActivationError,
    CycleOverlapError,
    CycleStateError,
    UnknownCycleError,
    ValidationError,
)
from lifter.models.enums import CycleState, PeriodicityType, ProgramDifficulty, ProgramType
from lifter.utils import from_iso, generate_id, to_iso, utc_now

# How far ahead schedules are generated when a cycle or lookup has no end
SCHEDULE_HORIZON = timedelta(days=365)

DAY_NAMES = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


def ranges_overlap(
    start_a: datetime,
    end_a: Optional[datetime],
    start_b: datetime,
    end_b: Optional[datetime],
) -> bool:
    """Inclusive overlap test where a ``None`` end means "no end"."""
    return (end_b is None or start_a <= end_b) and (end_a is None or start_b <= end_a)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _enum_or(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class WorkoutPeriodicity:
    """How often workouts are scheduled within a cycle."""
    type: PeriodicityType
    weekly_days: Optional[Tuple[int, ...]] = None  # ISO weekdays, 1=Monday .. 7=Sunday
    workout_days: Optional[int] = None
    rest_days: Optional[int] = None
    interval_days: Optional[int] = None
    custom_pattern: Optional[Dict[str, Any]] = field(default=None, hash=False)

    def __post_init__(self):
        if self.weekly_days is not None and any(d < 1 or d > 7 for d in self.weekly_days):
            raise ValueError("Weekly days must be between 1 (Monday) and 7 (Sunday)")
        if self.interval_days is not None and self.interval_days < 1:
            raise ValueError("Interval must be at least one day")
        if self.workout_days is not None and self.rest_days is not None:
            if self.workout_days < 0 or self.rest_days < 0 or self.workout_days + self.rest_days == 0:
                raise ValueError("Cyclic schedule needs a positive cycle length")

    @classmethod
    def weekly(cls, days: Iterable[int]) -> "WorkoutPeriodicity":
        return cls(type=PeriodicityType.WEEKLY, weekly_days=tuple(days))

    @classmethod
    def cyclic(cls, workout_days: int, rest_days: int) -> "WorkoutPeriodicity":
        return cls(type=PeriodicityType.CYCLIC, workout_days=workout_days, rest_days=rest_days)

    @classmethod
    def interval(cls, days: int) -> "WorkoutPeriodicity":
        return cls(type=PeriodicityType.INTERVAL, interval_days=days)

    @classmethod
    def custom(cls, pattern: Dict[str, Any]) -> "WorkoutPeriodicity":
        return cls(type=PeriodicityType.CUSTOM, custom_pattern=dict(pattern))

    @property
    def description(self) -> str:
        if self.type == PeriodicityType.WEEKLY:
            if not self.weekly_days:
                return "No schedule"
            return "Every " + ", ".join(DAY_NAMES[d] for d in self.weekly_days)
        if self.type == PeriodicityType.CYCLIC:
            if self.workout_days is None or self.rest_days is None:
                return "Invalid cycle"
            return f"{self.workout_days} days on, {self.rest_days} days rest"
        if self.type == PeriodicityType.INTERVAL:
            if self.interval_days is None:
                return "Invalid interval"
            return f"Every {self.interval_days} days"
        return "Custom schedule"

    @property
    def frequency_description(self) -> str:
        if self.type == PeriodicityType.WEEKLY:
            return f"{len(self.weekly_days or ())} days/week"
        if self.type == PeriodicityType.CYCLIC:
            if self.workout_days is None or self.rest_days is None:
                return "Variable"
            cycle_length = self.workout_days + self.rest_days
            return f"~{_round_half_up(self.workout_days / cycle_length * 7)} days/week"
        if self.type == PeriodicityType.INTERVAL:
            if self.interval_days is None:
                return "Variable"
            return f"~{_round_half_up(7 / self.interval_days)} days/week"
        return "Variable"

    def generate_workout_dates(self, start_date: datetime, end_date: datetime) -> List[datetime]:
        """List the workout dates from ``start_date`` to ``end_date`` inclusive."""
        dates: List[datetime] = []
        one_day = timedelta(days=1)
        current = start_date

        if self.type == PeriodicityType.WEEKLY:
            if not self.weekly_days:
                return dates
            while current <= end_date:
                if current.isoweekday() in self.weekly_days:
                    dates.append(current)
                current += one_day
        elif self.type == PeriodicityType.CYCLIC:
            if self.workout_days is None or self.rest_days is None:
                return dates
            cycle_length = self.workout_days + self.rest_days
            day_in_cycle = 0
            while current <= end_date:
                if day_in_cycle < self.workout_days:
                    dates.append(current)
                current += one_day
                day_in_cycle = (day_in_cycle + 1) % cycle_length
        elif self.type == PeriodicityType.INTERVAL:
            if self.interval_days is None:
                return dates
            step = timedelta(days=self.interval_days)
            while current <= end_date:
                dates.append(current)
                current += step
        # Custom patterns carry no generation rule yet
        return dates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "weekly_days": list(self.weekly_days) if self.weekly_days is not None else None,
            "workout_days": self.workout_days,
            "rest_days": self.rest_days,
            "interval_days": self.interval_days,
            "custom_pattern": self.custom_pattern,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkoutPeriodicity":
        weekly_days = data.get("weekly_days")
        return cls(
            type=_enum_or(PeriodicityType, data.get("type"), PeriodicityType.WEEKLY),
            weekly_days=tuple(weekly_days) if weekly_days is not None else None,
            workout_days=data.get("workout_days"),
            rest_days=data.get("rest_days"),
            interval_days=data.get("interval_days"),
            custom_pattern=data.get("custom_pattern"),
        )


@dataclass(frozen=True)
class ProgramCycle:
    """One run of a program between a start date and an optional end date."""
    id: str
    program_id: str
    cycle_number: int
    start_date: datetime
    created_at: datetime
    end_date: Optional[datetime] = None
    is_active: bool = False
    is_completed: bool = False
    periodicity: Optional[WorkoutPeriodicity] = None
    notes: Optional[str] = None

    @property
    def state(self) -> CycleState:
        if self.is_completed:
            return CycleState.COMPLETED
        if self.is_active:
            return CycleState.ACTIVE
        return CycleState.PLANNED

    @property
    def duration_in_days(self) -> Optional[int]:
        """Length of the cycle counting both the first and the last day."""
        if self.end_date is None:
            return None
        return (self.end_date - self.start_date).days + 1

    @property
    def duration_in_weeks(self) -> Optional[int]:
        days = self.duration_in_days
        if days is None:
            return None
        return math.ceil(days / 7)

    def is_within_date_range(self, date: datetime) -> bool:
        return self.start_date <= date and (self.end_date is None or date <= self.end_date)

    def can_be_activated_on(self, date: datetime) -> bool:
        return self.is_within_date_range(date) and not self.is_completed

    def is_currently_active(self, now: Optional[datetime] = None) -> bool:
        if not self.is_active or self.is_completed:
            return False
        return self.is_within_date_range(now or utc_now())

    def overlaps(self, start_date: datetime, end_date: Optional[datetime]) -> bool:
        return ranges_overlap(self.start_date, self.end_date, start_date, end_date)

    def start(self, current_date: Optional[datetime] = None) -> "ProgramCycle":
        """Return this cycle activated; rejects completed cycles and out-of-range dates."""
        now = current_date or utc_now()
        if self.is_completed:
            raise CycleActivationError("Cannot start a completed cycle")
        if not self.is_within_date_range(now):
            raise CycleActivationError("Cycle cannot be started: outside valid date range")
        return replace(self, is_active=True)

    def stop(self) -> "ProgramCycle":
        return replace(self, is_active=False)

    def complete(self, completed_at: Optional[datetime] = None) -> "ProgramCycle":
        """Return this cycle completed, stamping ``end_date`` when it has none.

        The stamped end never precedes ``start_date``.
        """
        if self.is_completed:
            raise CycleStateError(f"Cycle {self.cycle_number} is already completed")
        return replace(
            self,
            is_active=False,
            is_completed=True,
            end_date=self.end_date or max(completed_at or utc_now(), self.start_date),
        )

    def is_workout_expected_on_date(
        self,
        date: datetime,
        fallback: Optional[WorkoutPeriodicity] = None,
    ) -> bool:
        periodicity = self.periodicity or fallback
        if periodicity is None or not self.is_within_date_range(date):
            return False
        end = self.end_date or self.start_date + SCHEDULE_HORIZON
        target = date.date()
        return any(d.date() == target for d in periodicity.generate_workout_dates(self.start_date, end))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "cycle_number": self.cycle_number,
            "start_date": to_iso(self.start_date),
            "end_date": to_iso(self.end_date),
            "is_active": self.is_active,
            "is_completed": self.is_completed,
            "periodicity": self.periodicity.to_dict() if self.periodicity else None,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramCycle":
        periodicity = data.get("periodicity")
        return cls(
            id=data["id"],
            program_id=data["program_id"],
            cycle_number=data["cycle_number"],
            start_date=from_iso(data["start_date"]),
            end_date=from_iso(data.get("end_date")),
            is_active=data.get("is_active", False),
            is_completed=data.get("is_completed", False),
            periodicity=WorkoutPeriodicity.from_dict(periodicity) if periodicity else None,
            notes=data.get("notes"),
            created_at=from_iso(data["created_at"]),
        )


@dataclass(frozen=True)
class Program:
    """A training program template and the cycles it has been run for."""
    id: str
    name: str
    type: ProgramType
    difficulty: ProgramDifficulty
    created_at: datetime
    default_periodicity: Optional[WorkoutPeriodicity] = None
    description: Optional[str] = None
    created_by: Optional[str] = None
    is_public: bool = False
    tags: Tuple[str, ...] = ()
    cycles: Tuple[ProgramCycle, ...] = ()

    @classmethod
    def create(
        cls,
        name: str,
        type: ProgramType,
        difficulty: ProgramDifficulty,
        now: Optional[datetime] = None,
        **kwargs: Any,
    ) -> "Program":
        """Create a program with a generated id and no cycles."""
        return cls(
            id=generate_id(),
            name=name,
            type=type,
            difficulty=difficulty,
            created_at=now or utc_now(),
            **kwargs,
        )

    # Queries

    @property
    def active_cycle(self) -> Optional[ProgramCycle]:
        return next((c for c in self.cycles if c.is_active), None)

    @property
    def active_cycles_count(self) -> int:
        return sum(1 for c in self.cycles if c.is_active)

    @property
    def has_valid_cycle_state(self) -> bool:
        return self.active_cycles_count <= 1

    @property
    def completed_cycles(self) -> List[ProgramCycle]:
        return [c for c in self.cycles if c.is_completed]

    @property
    def last_completed_cycle(self) -> Optional[ProgramCycle]:
        completed = self.completed_cycles
        if not completed:
            return None
        return max(completed, key=lambda c: c.created_at)

    @property
    def next_cycle_number(self) -> int:
        if not self.cycles:
            return 1
        return max(c.cycle_number for c in self.cycles) + 1

    def get_cycle(self, cycle_id: str) -> Optional[ProgramCycle]:
        return next((c for c in self.cycles if c.id == cycle_id), None)

    def activatable_cycles(self, current_date: Optional[datetime] = None) -> List[ProgramCycle]:
        """Cycles whose date range contains ``current_date`` and are not completed."""
        now = current_date or utc_now()
        return [c for c in self.cycles if c.can_be_activated_on(now)]

    def would_overlap(
        self,
        start_date: datetime,
        end_date: Optional[datetime] = None,
        exclude_cycle_id: Optional[str] = None,
    ) -> bool:
        return any(
            c.overlaps(start_date, end_date)
            for c in self.cycles
            if c.id != exclude_cycle_id
        )

    @property
    def periodicity_description(self) -> str:
        if self.default_periodicity is None:
            return "No periodicity defined"
        return self.default_periodicity.description

    @property
    def frequency_description(self) -> str:
        if self.default_periodicity is None:
            return "No schedule"
        return self.default_periodicity.frequency_description

    def next_expected_workout_date(self, from_date: Optional[datetime] = None) -> Optional[datetime]:
        if self.default_periodicity is None:
            return None
        start = from_date or utc_now()
        dates = self.default_periodicity.generate_workout_dates(start, start + SCHEDULE_HORIZON)
        return dates[0] if dates else None

    def is_workout_expected_on_date(self, date: datetime) -> bool:
        cycle = self.active_cycle
        if cycle is None:
            return False
        return cycle.is_workout_expected_on_date(date, fallback=self.default_periodicity)

    # Mutations, each returning a new Program

    def _with_cycles(self, cycles: Iterable[ProgramCycle]) -> "Program":
        return replace(self, cycles=tuple(cycles))

    def _require_cycle(self, cycle_id: str) -> ProgramCycle:
        cycle = self.get_cycle(cycle_id)
        if cycle is None:
            raise UnknownCycleError(cycle_id)
        return cycle

    def _validate_range(
        self,
        start_date: datetime,
        end_date: Optional[datetime],
        exclude_cycle_id: Optional[str] = None,
    ) -> None:
        if end_date is not None and end_date < start_date:
            raise ValidationError("Cycle end date cannot be before its start date")
        if self.would_overlap(start_date, end_date, exclude_cycle_id):
            raise CycleOverlapError("Cycle dates overlap an existing cycle")

    def create_cycle(
        self,
        start_date: datetime,
        end_date: Optional[datetime] = None,
        periodicity: Optional[WorkoutPeriodicity] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Program":
        """Append a new planned cycle after checking it overlaps no existing one."""
        self._validate_range(start_date, end_date)
        cycle = ProgramCycle(
            id=generate_id(),
            program_id=self.id,
            cycle_number=self.next_cycle_number,
            start_date=start_date,
            end_date=end_date,
            created_at=now or utc_now(),
            periodicity=periodicity or self.default_periodicity,
            notes=notes,
        )
        return self._with_cycles(self.cycles + (cycle,))

    def add_cycle(self, cycle: ProgramCycle) -> "Program":
        """Append a prebuilt cycle, keeping its number, after the same checks as create."""
        if cycle.program_id != self.id:
            raise ValidationError(f"Cycle {cycle.id} belongs to program {cycle.program_id}")
        if self.get_cycle(cycle.id) is not None:
            raise ValidationError(f"Cycle {cycle.id} already exists")
        self._validate_range(cycle.start_date, cycle.end_date)
        cycles = self.cycles + (cycle,)
        if cycle.is_active:
            cycles = tuple(c if c.id == cycle.id else c.stop() if c.is_active else c for c in cycles)
        return self._with_cycles(cycles)

    def start_immediate_cycle(
        self,
        end_date: Optional[datetime] = None,
        periodicity: Optional[WorkoutPeriodicity] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Program":
        """Create a cycle starting now and activate it."""
        now = now or utc_now()
        program = self.create_cycle(now, end_date, periodicity=periodicity, notes=notes, now=now)
        return program.activate_cycle(program.cycles[-1].id, current_date=now)

    def remove_cycle(self, cycle_id: str) -> "Program":
        return self._with_cycles(c for c in self.cycles if c.id != cycle_id)

    def update_cycle_unchecked(self, updated: ProgramCycle) -> "Program":
        """Replace a cycle by id without re-running any date or state checks.

        The caller is responsible for keeping the timeline free of overlaps
        and for the single-active-cycle rule. Use ``update_cycle`` for the
        validated variant.
        """
        self._require_cycle(updated.id)
        return self._with_cycles(updated if c.id == updated.id else c for c in self.cycles)

    def update_cycle(self, updated: ProgramCycle, current_date: Optional[datetime] = None) -> "Program":
        """Replace a cycle by id, re-validating its dates and state transition.

        A completed cycle cannot be reopened, and a cycle that becomes active
        through the update must be activatable on ``current_date``.
        """
        existing = self._require_cycle(updated.id)
        if updated.program_id != self.id:
            raise ValidationError(f"Cycle {updated.id} belongs to program {updated.program_id}")
        if updated.is_active and updated.is_completed:
            raise CycleStateError("A cycle cannot be both active and completed")
        if existing.is_completed and not updated.is_completed:
            raise CycleStateError("A completed cycle cannot be reopened")
        if updated.is_active and not existing.is_active:
            if not updated.can_be_activated_on(current_date or utc_now()):
                raise CycleActivationError("Cycle cannot be activated: outside valid date range")
        self._validate_range(updated.start_date, updated.end_date, exclude_cycle_id=updated.id)

        def _merge(cycle: ProgramCycle) -> ProgramCycle:
            if cycle.id == updated.id:
                return updated
            if updated.is_active and cycle.is_active:
                return cycle.stop()
            return cycle

        return self._with_cycles(_merge(c) for c in self.cycles)

    def activate_cycle(self, cycle_id: str, current_date: Optional[datetime] = None) -> "Program":
        """Activate one cycle and deactivate any other active cycle."""
        now = current_date or utc_now()
        target = self._require_cycle(cycle_id)
        if target.is_completed:
            raise CycleActivationError("Cannot activate a completed cycle")
        if not target.is_within_date_range(now):
            raise CycleActivationError("Cycle cannot be activated: outside valid date range")

        def _activate(cycle: ProgramCycle) -> ProgramCycle:
            if cycle.id == cycle_id:
                return cycle.start(now)
            if cycle.is_active:
                return cycle.stop()
            return cycle

        return self._with_cycles(_activate(c) for c in self.cycles)

    def complete_cycle(self, cycle_id: str, completed_at: Optional[datetime] = None) -> "Program":
        completed = self._require_cycle(cycle_id).complete(completed_at)
        return self._with_cycles(completed if c.id == cycle_id else c for c in self.cycles)

    def complete_current_cycle(self, completed_at: Optional[datetime] = None) -> "Program":
        """Complete the active cycle; returns the program unchanged when none is active."""
        active = self.active_cycle
        if active is None:
            return self
        return self.complete_cycle(active.id, completed_at)

    def refresh_cycle_activation(self, current_date: Optional[datetime] = None) -> "Program":
        """Activate the cycle whose range contains ``current_date`` and pause the rest.

        Completed cycles are left as they are.
        """
        now = current_date or utc_now()
        candidates = sorted(self.activatable_cycles(now), key=lambda c: c.start_date)
        chosen_id = candidates[0].id if candidates else None

        def _refresh(cycle: ProgramCycle) -> ProgramCycle:
            if cycle.is_completed:
                return cycle
            if cycle.id == chosen_id:
                return cycle if cycle.is_active else cycle.start(now)
            return cycle.stop() if cycle.is_active else cycle

        return self._with_cycles(_refresh(c) for c in self.cycles)

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "difficulty": self.difficulty.value,
            "created_at": to_iso(self.created_at),
            "default_periodicity": self.default_periodicity.to_dict() if self.default_periodicity else None,
            "description": self.description,
            "created_by": self.created_by,
            "is_public": self.is_public,
            "tags": list(self.tags),
            "cycles": [c.to_dict() for c in self.cycles],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Program":
        periodicity = data.get("default_periodicity")
        return cls(
            id=data["id"],
            name=data["name"],
            type=_enum_or(ProgramType, data.get("type"), ProgramType.GENERAL),
            difficulty=_enum_or(ProgramDifficulty, data.get("difficulty"), ProgramDifficulty.BEGINNER),
            created_at=from_iso(data["created_at"]),
            default_periodicity=WorkoutPeriodicity.from_dict(periodicity) if periodicity else None,
            description=data.get("description"),
            created_by=data.get("created_by"),
            is_public=data.get("is_public", False),
            tags=tuple(data.get("tags", [])),
            cycles=tuple(ProgramCycle.from_dict(c) for c in data.get("cycles", [])),
        )

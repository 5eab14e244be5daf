"""Service for managing program cycles stored in the local program cache."""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from lifter import monitoring
from lifter.cache.datasources import ProgramLocalDataSource
from lifter.errors import UnknownProgramError, ValidationError
from lifter.models.program_models import Program, ProgramCycle, WorkoutPeriodicity

logger = logging.getLogger(__name__)


class ProgramCycleService:
    """Load a program, apply a cycle operation, and store the result.

    Validation happens in the ``Program`` model before anything is written:
    when an operation is rejected the stored program is left untouched and the
    ``ValidationError`` propagates to the caller.
    """

    def __init__(self, programs: ProgramLocalDataSource):
        """Initialize the service with the program datasource."""
        self.programs = programs

    async def _require_program(self, program_id: str) -> Program:
        program = await self.programs.get_cached_program_by_id(program_id)
        if program is None:
            raise UnknownProgramError(program_id)
        return program

    async def _mutate(self, program_id: str, operation: str, change: Callable[[Program], Program]) -> Program:
        program = await self._require_program(program_id)
        try:
            updated = change(program)
        except ValidationError as e:
            logger.info(f"Rejected {operation} on program {program_id}: {e}")
            monitoring.cycle_validation_errors.labels(error_type=type(e).__name__).inc()
            raise
        await self.programs.cache_program(updated)
        logger.debug(f"Applied {operation} on program {program_id}")
        return updated

    async def get_cycles_for_program(self, program_id: str) -> List[ProgramCycle]:
        program = await self.programs.get_cached_program_by_id(program_id)
        if program is None:
            return []
        return list(program.cycles)

    async def find_cycle(self, cycle_id: str) -> Optional[Tuple[Program, ProgramCycle]]:
        """Find a cycle in any cached program."""
        for program in await self.programs.get_cached_programs():
            cycle = program.get_cycle(cycle_id)
            if cycle is not None:
                return program, cycle
        return None

    async def create_cycle_for_program(
        self,
        program_id: str,
        start_date: datetime,
        end_date: Optional[datetime] = None,
        periodicity: Optional[WorkoutPeriodicity] = None,
        notes: Optional[str] = None,
    ) -> Program:
        return await self._mutate(
            program_id,
            "create_cycle",
            lambda p: p.create_cycle(start_date, end_date, periodicity=periodicity, notes=notes),
        )

    async def start_immediate_cycle_for_program(
        self,
        program_id: str,
        end_date: Optional[datetime] = None,
        periodicity: Optional[WorkoutPeriodicity] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Program:
        return await self._mutate(
            program_id,
            "start_immediate_cycle",
            lambda p: p.start_immediate_cycle(end_date, periodicity=periodicity, notes=notes, now=now),
        )

    async def activate_cycle(
        self,
        program_id: str,
        cycle_id: str,
        current_date: Optional[datetime] = None,
    ) -> Program:
        return await self._mutate(
            program_id,
            "activate_cycle",
            lambda p: p.activate_cycle(cycle_id, current_date=current_date),
        )

    async def complete_current_cycle(self, program_id: str, completed_at: Optional[datetime] = None) -> Program:
        return await self._mutate(
            program_id,
            "complete_current_cycle",
            lambda p: p.complete_current_cycle(completed_at),
        )

    async def update_cycle(
        self,
        program_id: str,
        cycle: ProgramCycle,
        current_date: Optional[datetime] = None,
    ) -> Program:
        """Replace a cycle after re-validating its dates and state transition."""
        return await self._mutate(
            program_id,
            "update_cycle",
            lambda p: p.update_cycle(cycle, current_date=current_date),
        )

    async def update_cycle_unchecked(self, program_id: str, cycle: ProgramCycle) -> Program:
        """Replace a cycle without date validation; the caller vouches for the timeline."""
        return await self._mutate(program_id, "update_cycle_unchecked", lambda p: p.update_cycle_unchecked(cycle))

    async def remove_cycle(self, program_id: str, cycle_id: str) -> Program:
        return await self._mutate(program_id, "remove_cycle", lambda p: p.remove_cycle(cycle_id))

    async def refresh_all_program_cycle_activations(self, current_date: Optional[datetime] = None) -> int:
        """Re-derive cycle activation from dates; returns the number of programs rewritten."""
        updated_count = 0
        for program in await self.programs.get_cached_programs():
            updated = program.refresh_cycle_activation(current_date)
            if updated != program:
                await self.programs.cache_program(updated)
                updated_count += 1
        logger.info(f"Refreshed cycle activation, {updated_count} programs changed")
        return updated_count

    async def get_activatable_cycles_for_program(
        self,
        program_id: str,
        current_date: Optional[datetime] = None,
    ) -> List[ProgramCycle]:
        program = await self.programs.get_cached_program_by_id(program_id)
        if program is None:
            return []
        return program.activatable_cycles(current_date)

    async def would_cycle_overlap(
        self,
        program_id: str,
        start_date: datetime,
        end_date: Optional[datetime] = None,
    ) -> bool:
        program = await self.programs.get_cached_program_by_id(program_id)
        if program is None:
            return False
        return program.would_overlap(start_date, end_date)

    async def get_program_cycle_status(
        self,
        program_id: str,
        current_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        program = await self.programs.get_cached_program_by_id(program_id)
        if program is None:
            return {}
        active = program.active_cycle
        return {
            "total_cycles": len(program.cycles),
            "active_cycles": program.active_cycles_count,
            "completed_cycles": len(program.completed_cycles),
            "activatable_cycles": len(program.activatable_cycles(current_date)),
            "current_active_cycle": active.id if active else None,
            "has_valid_cycle_state": program.has_valid_cycle_state,
            "next_cycle_number": program.next_cycle_number,
        }

    async def get_cycle_display_info(self, cycle_id: str) -> str:
        found = await self.find_cycle(cycle_id)
        if found is None:
            return "Cycle not found"
        program, cycle = found
        return f"Cycle {cycle.cycle_number} of {program.name} ({program.type.value}, {program.difficulty.value})"

    async def get_cycle_schedule_info(self, cycle_id: str) -> Optional[str]:
        found = await self.find_cycle(cycle_id)
        if found is None:
            return None
        program, cycle = found
        periodicity = cycle.periodicity or program.default_periodicity
        return periodicity.description if periodicity else "No schedule defined"

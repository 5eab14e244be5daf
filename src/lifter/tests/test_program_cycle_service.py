"""Tests for the program cycle service."""
from dataclasses import replace
from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from lifter.cache.datasources import LocalDataSources, build_durable_datasources, build_in_memory_datasources
from lifter.errors import (
    CycleActivationError,
    CycleOverlapError,
    CycleStateError,
    StorageUnavailableError,
    UnknownCycleError,
    UnknownProgramError,
    ValidationError,
)
from lifter.models.enums import ProgramDifficulty, ProgramType
from lifter.models.program_models import Program, WorkoutPeriodicity
from lifter.services.program_cycle_service import ProgramCycleService
from lifter.storage.key_value_store import SqlKeyValueStore


def day(month: int, day_of_month: int, year: int = 2024) -> datetime:
    return datetime(year, month, day_of_month, tzinfo=UTC)


def make_program(program_id: str = "p1") -> Program:
    return Program(
        id=program_id,
        name="Starting Strength",
        type=ProgramType.STRENGTH,
        difficulty=ProgramDifficulty.BEGINNER,
        created_at=day(1, 1),
        default_periodicity=WorkoutPeriodicity.weekly([1, 3, 5]),
    )


@pytest.fixture(params=["durable", "memory"])
def datasources(request, clock) -> LocalDataSources:
    if request.param == "durable":
        return build_durable_datasources(SqlKeyValueStore(request.getfixturevalue("db")), clock)
    return build_in_memory_datasources(clock)


@pytest.fixture
def service(datasources) -> ProgramCycleService:
    return ProgramCycleService(datasources.programs)


@pytest.fixture
async def stored_program(datasources) -> Program:
    """A program with a planned January cycle, already cached."""
    program = make_program().create_cycle(day(1, 1), day(1, 31), now=day(1, 1))
    await datasources.programs.cache_program(program)
    return program


@pytest.mark.asyncio
async def test_create_cycle_is_persisted(service, datasources):
    await datasources.programs.cache_program(make_program())

    updated = await service.create_cycle_for_program("p1", day(2, 1), day(2, 29), notes="Block 1")

    cached = await datasources.programs.get_cached_program_by_id("p1")
    assert cached == updated
    assert cached.cycles[0].notes == "Block 1"
    assert [c.cycle_number for c in await service.get_cycles_for_program("p1")] == [1]


@pytest.mark.asyncio
async def test_rejected_create_leaves_cache_untouched(service, datasources, stored_program):
    with pytest.raises(CycleOverlapError):
        await service.create_cycle_for_program("p1", day(1, 15), day(2, 15))

    assert await datasources.programs.get_cached_program_by_id("p1") == stored_program


@pytest.mark.asyncio
async def test_rejection_is_logged(service, stored_program, caplog):
    caplog.set_level("INFO", logger="lifter.services.program_cycle_service")

    with pytest.raises(ValidationError):
        await service.create_cycle_for_program("p1", day(1, 15))

    assert "Rejected create_cycle on program p1" in caplog.text


@pytest.mark.asyncio
async def test_unknown_program_rejected(service):
    with pytest.raises(UnknownProgramError, match="Program not found: missing"):
        await service.create_cycle_for_program("missing", day(1, 1))


@pytest.mark.asyncio
async def test_activate_and_complete(service, datasources, stored_program):
    cycle_id = stored_program.cycles[0].id

    await service.activate_cycle("p1", cycle_id, current_date=day(1, 10))
    status = await service.get_program_cycle_status("p1", current_date=day(1, 10))
    assert status["current_active_cycle"] == cycle_id
    assert status["active_cycles"] == 1

    await service.complete_current_cycle("p1", completed_at=day(1, 20))
    cached = await datasources.programs.get_cached_program_by_id("p1")
    assert cached.active_cycle is None
    assert cached.last_completed_cycle.id == cycle_id


@pytest.mark.asyncio
async def test_activate_outside_range_rejected(service, datasources, stored_program):
    with pytest.raises(CycleActivationError):
        await service.activate_cycle("p1", stored_program.cycles[0].id, current_date=day(3, 1))

    assert (await datasources.programs.get_cached_program_by_id("p1")).active_cycle is None


@pytest.mark.asyncio
async def test_activate_unknown_cycle_rejected(service, stored_program):
    with pytest.raises(UnknownCycleError):
        await service.activate_cycle("p1", "missing", current_date=day(1, 10))


@pytest.mark.asyncio
async def test_start_immediate_cycle(service, stored_program):
    now = datetime(2024, 2, 3, 8, 0, tzinfo=UTC)

    updated = await service.start_immediate_cycle_for_program("p1", end_date=day(3, 31), now=now)

    assert updated.active_cycle.cycle_number == 2
    assert updated.active_cycle.start_date == now


@pytest.mark.asyncio
async def test_update_cycle_checked_and_unchecked(service, datasources, stored_program):
    updated = await service.create_cycle_for_program("p1", day(2, 1), day(2, 29))
    second = updated.cycles[1]
    moved = replace(second, start_date=day(1, 25))

    with pytest.raises(CycleOverlapError):
        await service.update_cycle("p1", moved)

    await service.update_cycle_unchecked("p1", moved)
    cached = await datasources.programs.get_cached_program_by_id("p1")
    assert cached.get_cycle(second.id).start_date == day(1, 25)


@pytest.mark.asyncio
async def test_update_cycle_guards_state_transitions(service, datasources, stored_program):
    cycle = stored_program.cycles[0]
    await service.activate_cycle("p1", cycle.id, current_date=day(1, 10))
    completed = (await service.complete_current_cycle("p1", completed_at=day(1, 20))).get_cycle(cycle.id)

    with pytest.raises(CycleStateError):
        await service.update_cycle("p1", replace(completed, is_active=True, is_completed=False), current_date=day(1, 15))

    assert (await datasources.programs.get_cached_program_by_id("p1")).get_cycle(cycle.id).is_completed

    planned = (await service.create_cycle_for_program("p1", day(3, 1), day(3, 31))).cycles[1]
    with pytest.raises(CycleActivationError):
        await service.update_cycle("p1", replace(planned, is_active=True), current_date=day(2, 1))

    updated = await service.update_cycle("p1", replace(planned, is_active=True), current_date=day(3, 5))
    assert updated.active_cycle.id == planned.id


@pytest.mark.asyncio
async def test_remove_cycle(service, stored_program):
    updated = await service.remove_cycle("p1", stored_program.cycles[0].id)

    assert updated.cycles == ()
    assert await service.get_cycles_for_program("p1") == []


@pytest.mark.asyncio
async def test_refresh_all_program_cycle_activations(service, datasources, stored_program):
    idle = make_program("p2")
    await datasources.programs.cache_program(idle)

    changed = await service.refresh_all_program_cycle_activations(day(1, 10))

    assert changed == 1
    assert (await datasources.programs.get_cached_program_by_id("p1")).active_cycle is not None
    assert await datasources.programs.get_cached_program_by_id("p2") == idle
    assert await service.refresh_all_program_cycle_activations(day(1, 11)) == 0


@pytest.mark.asyncio
async def test_queries_for_unknown_program(service):
    assert await service.get_cycles_for_program("missing") == []
    assert await service.get_activatable_cycles_for_program("missing") == []
    assert await service.would_cycle_overlap("missing", day(1, 1)) is False
    assert await service.get_program_cycle_status("missing") == {}


@pytest.mark.asyncio
async def test_overlap_and_activatable_queries(service, stored_program):
    assert await service.would_cycle_overlap("p1", day(1, 31), day(2, 5))
    assert not await service.would_cycle_overlap("p1", day(2, 1))

    activatable = await service.get_activatable_cycles_for_program("p1", current_date=day(1, 5))
    assert [c.id for c in activatable] == [stored_program.cycles[0].id]


@pytest.mark.asyncio
async def test_program_cycle_status(service, stored_program):
    status = await service.get_program_cycle_status("p1", current_date=day(1, 5))

    assert status == {
        "total_cycles": 1,
        "active_cycles": 0,
        "completed_cycles": 0,
        "activatable_cycles": 1,
        "current_active_cycle": None,
        "has_valid_cycle_state": True,
        "next_cycle_number": 2,
    }


@pytest.mark.asyncio
async def test_display_and_schedule_info(service, stored_program):
    cycle_id = stored_program.cycles[0].id

    assert await service.get_cycle_display_info(cycle_id) == "Cycle 1 of Starting Strength (strength, beginner)"
    assert await service.get_cycle_schedule_info(cycle_id) == "Every Monday, Wednesday, Friday"
    assert await service.get_cycle_display_info("missing") == "Cycle not found"
    assert await service.get_cycle_schedule_info("missing") is None


@pytest.mark.asyncio
async def test_find_cycle(service, stored_program):
    program, cycle = await service.find_cycle(stored_program.cycles[0].id)

    assert program.id == "p1"
    assert cycle.cycle_number == 1
    assert await service.find_cycle("missing") is None


@pytest.mark.asyncio
async def test_storage_failure_propagates(service, datasources, stored_program):
    with patch.object(
        datasources.programs,
        "cache_program",
        side_effect=StorageUnavailableError("put", "programs"),
    ):
        with pytest.raises(StorageUnavailableError):
            await service.activate_cycle("p1", stored_program.cycles[0].id, current_date=day(1, 10))

    assert (await datasources.programs.get_cached_program_by_id("p1")).active_cycle is None


if __name__ == "__main__":
    pytest.main([__file__])

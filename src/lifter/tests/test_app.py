"""Tests for the main application."""
from datetime import UTC, datetime
from unittest.mock import patch

import pytest
from sqlalchemy.engine import Engine

from lifter.app import LifterApp
from lifter.config import settings
from lifter.models.enums import ProgramDifficulty, ProgramType
from lifter.models.program_models import Program


def make_program() -> Program:
    return Program(
        id="p1",
        name="5/3/1",
        type=ProgramType.POWERLIFTING,
        difficulty=ProgramDifficulty.ADVANCED,
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )


@pytest.fixture
async def app(engine: Engine, clock) -> LifterApp:
    """Create an application over the test engine."""
    lifter_app = LifterApp(engine=engine, clock=clock)
    yield lifter_app
    await lifter_app.stop()


@pytest.mark.asyncio
async def test_start(app: LifterApp) -> None:
    """Test starting the application."""
    await app.start()

    assert app.running
    assert app.db is not None
    assert app.datasources is not None
    assert app.cycle_service is not None


@pytest.mark.asyncio
async def test_stop(app: LifterApp) -> None:
    """Test stopping the application."""
    await app.start()
    await app.stop()

    assert not app.running
    assert app.db is None
    assert app.datasources is None


@pytest.mark.asyncio
async def test_start_when_already_running(app: LifterApp) -> None:
    """A second start keeps the existing session."""
    await app.start()
    session = app.db

    await app.start()

    assert app.db is session


@pytest.mark.asyncio
async def test_stop_when_not_running(app: LifterApp) -> None:
    await app.stop()

    assert not app.running


@pytest.mark.asyncio
async def test_error_handling(app: LifterApp) -> None:
    """A failure while starting releases what was opened and propagates."""
    with patch("lifter.app.build_durable_datasources", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError, match="boom"):
            await app.start()

    assert not app.running
    assert app.db is None


@pytest.mark.asyncio
async def test_cache_status_before_start(app: LifterApp) -> None:
    with pytest.raises(RuntimeError, match="not started"):
        await app.cache_status()


@pytest.mark.asyncio
async def test_cache_status(app: LifterApp, clock) -> None:
    await app.start()
    await app.datasources.programs.cache_program(make_program())

    status = await app.cache_status()

    assert set(status) == {"custom_exercises", "exercise_preferences", "programs", "workout_sessions"}
    assert status["programs"] == {"last_update": clock.now.isoformat(), "expired": False}
    assert status["workout_sessions"] == {"last_update": None, "expired": True}


@pytest.mark.asyncio
async def test_cache_survives_restart(engine: Engine, clock) -> None:
    """Data written by one application instance is read back by the next."""
    first = LifterApp(engine=engine, clock=clock)
    await first.start()
    await first.datasources.programs.cache_program(make_program())
    await first.stop()

    second = LifterApp(engine=engine, clock=clock)
    await second.start()
    try:
        program = await second.datasources.programs.get_cached_program_by_id("p1")
        assert program == make_program()
        assert await second.datasources.programs.get_last_cache_update() == clock.now
    finally:
        await second.stop()


@pytest.mark.asyncio
async def test_monitoring_started_when_enabled(app: LifterApp) -> None:
    with patch.object(settings.monitoring, "enabled", True), \
            patch("lifter.app.start_monitoring") as mock_start:
        await app.start()

    mock_start.assert_called_once()


if __name__ == "__main__":
    pytest.main([__file__])

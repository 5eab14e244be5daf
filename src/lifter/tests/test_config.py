"""Tests for configuration settings."""
import pytest

from lifter.config import CacheSettings, MonitoringSettings, Settings, settings


def test_settings_defaults():
    """Test default settings values."""
    assert settings.cache.max_age_minutes == 5
    assert settings.cache.namespaces == [
        "custom_exercises",
        "exercise_preferences",
        "programs",
        "workout_sessions",
    ]
    assert settings.cache.timestamp_prefix == "_cache_timestamp_"
    assert settings.monitoring.enabled is False


def test_settings_from_env(monkeypatch):
    """Test that settings can be overridden by environment variables."""
    monkeypatch.setenv("CACHE_MAX_AGE_MINUTES", "10")
    monkeypatch.setenv("METRICS_PORT", "9100")

    test_settings = Settings()

    assert test_settings.cache.max_age_minutes == 10
    assert test_settings.monitoring.port == 9100


def test_validate_rejects_non_positive_max_age():
    test_settings = Settings(cache=CacheSettings(max_age_minutes=0))
    with pytest.raises(ValueError, match="CACHE_MAX_AGE_MINUTES"):
        test_settings.validate()


def test_validate_rejects_duplicate_namespaces():
    test_settings = Settings(cache=CacheSettings(programs_namespace="custom_exercises"))
    with pytest.raises(ValueError, match="distinct"):
        test_settings.validate()


def test_validate_rejects_namespace_with_timestamp_prefix():
    test_settings = Settings(cache=CacheSettings(programs_namespace="_cache_timestamp_programs"))
    with pytest.raises(ValueError, match="timestamp prefix"):
        test_settings.validate()


def test_validate_rejects_bad_port():
    test_settings = Settings(monitoring=MonitoringSettings(port=70000))
    with pytest.raises(ValueError, match="METRICS_PORT"):
        test_settings.validate()


if __name__ == "__main__":
    pytest.main([__file__])

"""Configuration settings for the cache and program cycle layer."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(BASE_DIR / env_file)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///lifter.db"))
    echo: bool = field(default_factory=lambda: _env_bool("DATABASE_ECHO"))


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = field(default_factory=lambda: os.getenv("LOG_DIR", None))
    rotation: str = field(default_factory=lambda: os.getenv("LOG_ROTATION", "midnight"))
    interval: int = field(default_factory=lambda: int(os.getenv("LOG_INTERVAL", "1")))
    backup_count: int = field(default_factory=lambda: int(os.getenv("LOG_BACKUP_COUNT", "7")))


@dataclass
class CacheSettings:
    """Local cache settings."""
    max_age_minutes: int = field(default_factory=lambda: int(os.getenv("CACHE_MAX_AGE_MINUTES", "5")))
    custom_exercises_namespace: str = "custom_exercises"
    preferences_namespace: str = "exercise_preferences"
    programs_namespace: str = "programs"
    workout_sessions_namespace: str = "workout_sessions"
    timestamp_prefix: str = "_cache_timestamp_"

    @property
    def namespaces(self) -> list[str]:
        return [
            self.custom_exercises_namespace,
            self.preferences_namespace,
            self.programs_namespace,
            self.workout_sessions_namespace,
        ]


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = field(default_factory=lambda: _env_bool("METRICS_ENABLED"))
    port: int = field(default_factory=lambda: int(os.getenv("METRICS_PORT", "9090")))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_cache_settings() -> CacheSettings:
    """Get cache settings."""
    return CacheSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    cache: CacheSettings = field(default_factory=get_cache_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.cache.max_age_minutes < 1:
            raise ValueError("CACHE_MAX_AGE_MINUTES must be positive")

        namespaces = self.cache.namespaces
        if len(set(namespaces)) != len(namespaces):
            raise ValueError("Cache namespaces must be distinct")

        if any(ns.startswith(self.cache.timestamp_prefix) for ns in namespaces):
            raise ValueError("Cache namespaces cannot use the timestamp prefix")

        if not 0 < self.monitoring.port < 65536:
            raise ValueError("METRICS_PORT must be between 1 and 65535")


# Create global settings instance
settings = Settings()
settings.validate()

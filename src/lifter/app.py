"""Application composition root."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from lifter.cache.collection import Clock
from lifter.cache.datasources import LocalDataSources, build_durable_datasources
from lifter.config import settings
from lifter.models.base import SessionLocal, engine as default_engine, init_db
from lifter.monitoring import start_monitoring
from lifter.services.program_cycle_service import ProgramCycleService
from lifter.storage.key_value_store import SqlKeyValueStore


class LifterApp:
    """Owns the database session, the durable cache and the services built on it.

    One instance is created by the entry point and passed to whoever needs
    the datasources; nothing here is a module-level singleton.
    """

    def __init__(self, engine: Optional[Engine] = None, clock: Optional[Clock] = None):
        """Initialize the application."""
        self.engine = engine or default_engine
        self.clock = clock
        self.db: Optional[Session] = None
        self.store: Optional[SqlKeyValueStore] = None
        self.datasources: Optional[LocalDataSources] = None
        self.cycle_service: Optional[ProgramCycleService] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            init_db(self.engine)
            self.db = SessionLocal(bind=self.engine)
            self.logger.info("Database initialized")

            self.store = SqlKeyValueStore(self.db)
            self.datasources = build_durable_datasources(self.store, self.clock)
            self.cycle_service = ProgramCycleService(self.datasources.programs)
            self.logger.info("Cache datasources created")

            if settings.monitoring.enabled:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics exposed on port {settings.monitoring.port}")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            self._release()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.running:
            return
        self._release()
        self.running = False
        self.logger.info("Application stopped")

    def _release(self) -> None:
        if self.db is not None:
            self.db.close()
            self.logger.info("Database session closed")
        self.db = None
        self.store = None
        self.datasources = None
        self.cycle_service = None

    async def cache_status(self) -> Dict[str, Dict[str, Any]]:
        """Report the last update and staleness of every cache collection."""
        if self.datasources is None:
            raise RuntimeError("Application is not started")
        status = {}
        for collection in self.datasources.collections:
            last_update = await collection.get_last_update()
            status[collection.name] = {
                "last_update": last_update.isoformat() if last_update else None,
                "expired": await collection.is_expired(),
            }
        return status

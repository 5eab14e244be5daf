"""Main entry point: open the local cache and report its freshness."""
import asyncio
import logging

from lifter.app import LifterApp
from lifter.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def main() -> None:
    """Start the application, log the state of each cache collection and stop."""
    app = LifterApp()
    await app.start()
    try:
        for name, status in (await app.cache_status()).items():
            state = "expired" if status["expired"] else "fresh"
            logger.info(f"{name}: {state} (last update: {status['last_update'] or 'never'})")
    finally:
        logger.info("Cleaning up...")
        await app.stop()


if __name__ == "__main__":
    setup_logging("Starting lifter cache report ...")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")

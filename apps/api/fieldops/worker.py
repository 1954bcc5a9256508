"""
Background worker for processing due automations.

Usage:
    python -m fieldops.worker

The worker polls for due automations across all accounts, processes them,
and periodically fails items left in processing by a crashed driver.
"""

import asyncio
import logging
from datetime import timedelta

from fieldops.core.config import settings
from fieldops.core.structured_logging import build_log_context
from fieldops.db.session import SessionLocal
from fieldops.services import automation_service
from fieldops.services.automation_content import AutomationContentGenerator
from fieldops.services.automation_runner import run_due_automations

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Worker configuration
POLL_INTERVAL_SECONDS = settings.WORKER_POLL_INTERVAL
BATCH_SIZE = settings.AUTOMATION_BATCH_SIZE
STALE_AFTER = timedelta(minutes=settings.AUTOMATION_STALE_MINUTES)


async def run_once(generator: AutomationContentGenerator) -> None:
    """One poll: release stale items, then process a batch."""
    with SessionLocal() as db:
        released = automation_service.release_stale_automations(db, STALE_AFTER)
        if released:
            logger.warning(f"Released {released} stale automations")

        summary = await run_due_automations(
            db, generator, limit=BATCH_SIZE, timeout_seconds=settings.AI_TIMEOUT_SECONDS
        )
        if summary.attempted:
            logger.info(
                f"Processed {summary.processed} of {summary.attempted} due automations"
            )


async def worker_loop() -> None:
    """Main worker loop - polls for and processes due automations."""
    logger.info(
        f"Worker starting (poll interval: {POLL_INTERVAL_SECONDS}s, batch size: {BATCH_SIZE})"
    )

    generator = AutomationContentGenerator.from_settings()
    if generator.provider is None:
        logger.warning("OPENAI_API_KEY not set - automations will fail until configured")

    while True:
        try:
            await run_once(generator)
        except Exception as e:
            logger.error(f"Error in worker loop: {type(e).__name__}")

        await asyncio.sleep(POLL_INTERVAL_SECONDS)


def main() -> None:
    """Entry point for the worker."""
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(route="worker", method="background"),
        )
        raise


if __name__ == "__main__":
    main()

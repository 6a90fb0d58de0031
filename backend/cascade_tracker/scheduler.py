"""Job scheduler using APScheduler."""

import logging
from datetime import datetime

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from cascade_tracker.config import Settings
from cascade_tracker.generation.main import generation_job
from cascade_tracker.resolution.poller import get_poller, resolution_poll_job

logger = logging.getLogger(__name__)


def build_scheduler(settings: Settings) -> BlockingScheduler:
    """Create a scheduler with the resolution poll (and optional generation) jobs."""
    scheduler = BlockingScheduler()

    # First poll runs immediately, then on the interval
    scheduler.add_job(
        resolution_poll_job,
        IntervalTrigger(minutes=settings.scheduler.resolution_poll_minutes),
        id="resolution-poll",
        name="Resolution: Queue Poll",
        next_run_time=datetime.now(),
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        f"Registered job: Resolution Poll (every {settings.scheduler.resolution_poll_minutes} min)"
    )

    if settings.scheduler.generation_minutes > 0:
        scheduler.add_job(
            generation_job,
            IntervalTrigger(minutes=settings.scheduler.generation_minutes),
            id="cascade-generation",
            name="Generation: Cascade Batch",
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            f"Registered job: Cascade Generation (every {settings.scheduler.generation_minutes} min, "
            f"{settings.scheduler.generation_batch_size} per batch)"
        )
    else:
        logger.info("Scheduled generation disabled (scheduler.generation_minutes = 0)")

    return scheduler


def start_scheduler(settings: Settings) -> None:
    """Start the blocking scheduler until interrupted."""
    scheduler = build_scheduler(settings)
    poller = get_poller()

    try:
        logger.info("✓ Scheduler starting...")
        logger.info(f"✓ {len(scheduler.get_jobs())} jobs registered")
        logger.info("Press Ctrl+C to stop\n")

        poller.polling_active = True
        scheduler.start()

    except (KeyboardInterrupt, SystemExit):
        logger.info("\nReceived interrupt signal")
        scheduler.shutdown()
        logger.info("✓ Scheduler stopped cleanly")
    finally:
        poller.polling_active = False

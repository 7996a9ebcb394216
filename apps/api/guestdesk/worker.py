"""
Background worker for processing scheduled jobs.

Usage:
    python -m guestdesk.worker

The worker polls for pending jobs (guest message classification followed
by rule evaluation) and processes them. Run it as a separate process next
to the API.
"""

import asyncio
import logging
import os

from guestdesk.core.config import settings
from guestdesk.core.structured_logging import build_log_context
from guestdesk.db.session import SessionLocal
from guestdesk.jobs.registry import resolve_job_handler
from guestdesk.services import job_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


async def process_job(db, job) -> None:
    """Process a single job based on its type."""
    logger.info("Processing job %s (type=%s, attempt=%s)", job.id, job.job_type, job.attempts)
    handler = resolve_job_handler(job.job_type)
    await handler(db, job)


async def run_once(db, batch_size: int | None = None) -> int:
    """Claim and process one batch of due jobs. Returns the number claimed."""
    job_service.requeue_stale_jobs(db)
    jobs = job_service.claim_pending_jobs(db, limit=batch_size or settings.WORKER_BATCH_SIZE)
    if jobs:
        logger.info("Found %s pending jobs", len(jobs))

    for job in jobs:
        try:
            await process_job(db, job)
            job_service.mark_job_completed(db, job)
            logger.info("Job %s completed successfully", job.id)
        except Exception as e:
            db.rollback()
            job_service.mark_job_failed(db, job, str(e) or type(e).__name__)
            logger.error("Job %s failed: %s", job.id, type(e).__name__)
    return len(jobs)


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending jobs."""
    logger.info(
        "Worker starting (poll interval: %ss, batch size: %s)",
        settings.WORKER_POLL_INTERVAL,
        settings.WORKER_BATCH_SIZE,
    )
    if not settings.ai_enabled:
        logger.warning("OPENAI_API_KEY not set - guest messages will stay unclassified")

    while True:
        with SessionLocal() as db:
            try:
                await run_once(db)
            except Exception as e:
                logger.error("Error in worker loop: %s", type(e).__name__)

        await asyncio.sleep(settings.WORKER_POLL_INTERVAL)


def main() -> None:
    """Entry point for the worker."""
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(
                request_id=os.getenv("WORKER_INSTANCE_ID"),
                route="worker",
                method="background",
            ),
        )
        raise


if __name__ == "__main__":
    main()

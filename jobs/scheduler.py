"""
Periodic scheduler.

Enqueues the daily membership tasks on the dramatiq broker.
Run with: python -m jobs.scheduler
"""

import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

import jobs.broker  # noqa: F401  (registers the Redis broker and logging)
from jobs.tasks.membership_expiration import (
    send_membership_expiry_notices,
    sweep_membership_expirations,
)
from referral_engine.config.settings import settings


def create_scheduler() -> AsyncIOScheduler:
    """
    Build the scheduler with the daily membership jobs.

    Returns:
        Configured (not started) scheduler
    """
    scheduler = AsyncIOScheduler(timezone=settings.tz)

    scheduler.add_job(
        sweep_membership_expirations.send,
        CronTrigger(hour=settings.expiry_sweep_hour, minute=0),
        id="membership_expiration_sweep",
        name="Membership expiration sweep",
        replace_existing=True,
    )
    scheduler.add_job(
        send_membership_expiry_notices.send,
        CronTrigger(hour=settings.expiry_notice_hour, minute=0),
        id="membership_expiry_notices",
        name="Membership expiry notices",
        replace_existing=True,
    )
    return scheduler


async def main() -> None:
    """Start the scheduler and run forever."""
    scheduler = create_scheduler()
    scheduler.start()
    logger.info(
        f"Scheduler started with {len(scheduler.get_jobs())} jobs "
        f"(timezone {settings.business_timezone})"
    )

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())

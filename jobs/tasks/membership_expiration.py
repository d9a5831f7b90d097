"""
Membership expiration tasks.

Daily sweep that expires memberships whose earning window has closed,
and the expiry notices that precede it.
"""

import asyncio

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobs.utils.database import task_session
from referral_engine.services.membership.lifecycle import (
    ExpiryNoticeResult,
    MembershipLifecycle,
    SweepResult,
)
from referral_engine.utils.exceptions import is_retryable


@dramatiq.actor(max_retries=3, time_limit=300_000)  # 5 min timeout
def sweep_membership_expirations() -> None:
    """
    Expire ACTIVE memberships past earnings_continue_until.

    Store outages are re-raised so the Retries middleware backs off and
    tries again; the sweep is idempotent.
    """
    logger.info("Starting membership expiration sweep...")

    try:
        result = asyncio.run(_sweep_membership_expirations_async())
    except Exception as e:
        if is_retryable(e):
            logger.warning(f"Membership expiration sweep will be retried: {e}")
            raise
        logger.exception(f"Membership expiration sweep failed: {e}")
        return

    logger.info(
        f"Membership expiration sweep complete: "
        f"{result.expired} expired, {result.failed} failed"
    )


@dramatiq.actor(max_retries=3, time_limit=300_000)  # 5 min timeout
def send_membership_expiry_notices() -> None:
    """Send 7-day and 3-day expiry notices."""
    logger.info("Starting membership expiry notices...")

    try:
        result = asyncio.run(_send_membership_expiry_notices_async())
    except Exception as e:
        if is_retryable(e):
            logger.warning(f"Membership expiry notices will be retried: {e}")
            raise
        logger.exception(f"Membership expiry notices failed: {e}")
        return

    logger.info(
        f"Membership expiry notices complete: "
        f"{result.seven_day} seven-day, {result.three_day} three-day"
    )


async def _sweep_membership_expirations_async(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> SweepResult:
    """Async implementation of the expiration sweep."""
    async with task_session(session_maker) as session:
        lifecycle = MembershipLifecycle(session)
        return await lifecycle.sweep_expirations()


async def _send_membership_expiry_notices_async(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> ExpiryNoticeResult:
    """Async implementation of the expiry notices."""
    async with task_session(session_maker) as session:
        lifecycle = MembershipLifecycle(session)
        return await lifecycle.send_expiry_notices()

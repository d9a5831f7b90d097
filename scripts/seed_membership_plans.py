#!/usr/bin/env python3
"""Seed the default BASIC / STANDARD / PREMIUM membership plans."""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from referral_engine.config.database import async_session_maker, engine
from referral_engine.services.plans.plan_catalog import seed_default_plans

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def seed_membership_plans() -> None:
    """Insert missing default plans with their commission tables."""
    async with async_session_maker() as session:
        created = await seed_default_plans(session)
        await session.commit()

    await engine.dispose()
    if created:
        logger.success(f"Seeded {created} membership plans")
    else:
        logger.info("All default membership plans already exist")


if __name__ == "__main__":
    asyncio.run(seed_membership_plans())

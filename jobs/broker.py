"""
Dramatiq broker configuration.

Redis-backed queue for the membership maintenance tasks. Only store
outages are retried; every other failure is final.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, Retries, ShutdownNotifications
from loguru import logger

from referral_engine.config.logging import setup_logging
from referral_engine.config.settings import Settings, settings
from referral_engine.utils.exceptions import is_retryable


def should_retry(retries_so_far: int, exception: Exception) -> bool:
    """Retry policy for the Retries middleware."""
    return retries_so_far < settings.task_max_retries and is_retryable(exception)


def create_broker(config: Settings = settings) -> RedisBroker:
    """
    Build the Redis broker with shutdown, message and retry middleware.

    Args:
        config: Settings carrying the Redis location and retry limits

    Returns:
        Configured RedisBroker (not yet installed as the default)
    """
    redis_broker = RedisBroker(
        host=config.redis_host,
        port=config.redis_port,
        password=config.redis_password or None,
        db=config.redis_db,
    )
    redis_broker.add_middleware(ShutdownNotifications())
    redis_broker.add_middleware(CurrentMessage())
    redis_broker.add_middleware(
        Retries(
            max_retries=config.task_max_retries,
            min_backoff=config.task_min_backoff_ms,
            max_backoff=config.task_max_backoff_ms,
            retry_when=should_retry,
        )
    )
    return redis_broker


# Worker processes log to stderr and a rotating file
setup_logging()

broker = create_broker()
dramatiq.set_broker(broker)

logger.info(
    f"Dramatiq broker initialized: "
    f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
)

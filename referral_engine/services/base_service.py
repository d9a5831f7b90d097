"""
Base service class.

Services own one session each. The decorators below give every
mutating operation the same commit, rollback and error translation.
"""

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.exc import IntegrityError as StoreIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.utils.exceptions import (
    ReferralEngineError,
    TransientStoreError,
    is_transient_store_failure,
)


T = TypeVar("T")


class BaseService:
    """Session holder with a logger bound to the service name."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback current transaction."""
        await self.session.rollback()

    async def refresh(self, obj: Any) -> None:
        await self.session.refresh(obj)


async def _handle_failure(
    service: BaseService, func_name: str, error: Exception
) -> None:
    """Roll back and translate a failed unit of work."""
    await service.rollback()

    if isinstance(error, (ReferralEngineError, StoreIntegrityError)):
        # Business outcomes and constraint conflicts are expected results
        service.logger.warning(
            f"Transaction rolled back in {func_name}: {type(error).__name__}",
            extra={"error": str(error), "function": func_name},
        )
        return

    service.logger.error(
        f"Transaction failed in {func_name}",
        extra={
            "error": str(error),
            "function": func_name,
        },
        exc_info=True,
    )
    if is_transient_store_failure(error):
        raise TransientStoreError(str(error)) from error


def with_rollback_on_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Roll back when the method raises. The method commits itself.

    Store connectivity failures surface as TransientStoreError; other
    exceptions propagate unchanged.
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            return await func(self, *args, **kwargs)
        except Exception as e:
            await _handle_failure(self, func.__name__, e)
            raise

    return wrapper


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Run the method as one unit of work: commit on return, roll back on raise.

    Notifications must be dispatched by the caller after this returns,
    so nothing is sent for work that was rolled back.
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
        except Exception as e:
            await _handle_failure(self, func.__name__, e)
            raise
        return result

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """Log duration and outcome of a scheduled or batch operation."""
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        started = time.perf_counter()
        self.logger.debug(f"{func.__name__} started")

        outcome = "failed"
        try:
            result = await func(self, *args, **kwargs)
            outcome = "completed"
            return result
        finally:
            elapsed = round(time.perf_counter() - started, 3)
            log = self.logger.info if outcome == "completed" else self.logger.warning
            log(
                f"{func.__name__} {outcome}",
                extra={"function": func.__name__, "duration_seconds": elapsed},
            )

    return wrapper

"""
Exception handling utilities.

Defines the engine's error taxonomy and categorized exception types
for retry decisions.
"""

from sqlalchemy.exc import DBAPIError, OperationalError


class ReferralEngineError(Exception):
    """Base class for all engine errors."""


class NotFoundError(ReferralEngineError):
    """Member or plan does not exist."""

    def __init__(self, entity: str, key: object) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class IntegrityError(ReferralEngineError):
    """Sponsor graph is not a forest (cycle or self-sponsorship)."""

    def __init__(self, message: str, member_id: int | None = None) -> None:
        self.member_id = member_id
        super().__init__(message)


class InvalidPlan(ReferralEngineError):
    """Plan reference is unknown or disabled."""

    def __init__(self, plan_name: str | None) -> None:
        self.plan_name = plan_name
        super().__init__(f"Invalid membership plan: {plan_name!r}")


class MembershipInactive(ReferralEngineError):
    """Member has no ACTIVE membership."""

    def __init__(self, member_id: int, status: str) -> None:
        self.member_id = member_id
        self.status = status
        super().__init__(
            f"Member {member_id} has no active membership (status={status})"
        )


class InvalidMembershipTransition(ReferralEngineError):
    """Requested lifecycle transition is not allowed from current state."""

    def __init__(self, member_id: int, current: str, target: str) -> None:
        self.member_id = member_id
        self.current = current
        self.target = target
        super().__init__(
            f"Member {member_id} cannot move from {current} to {target}"
        )


class TerminalError(ReferralEngineError):
    """Outcome that must not be retried by the caller."""


class AlreadyCreditedToday(TerminalError):
    """Daily earning already credited for this calendar day."""

    def __init__(self, member_id: int, day: object) -> None:
        self.member_id = member_id
        self.day = day
        super().__init__(
            f"Daily earning already credited for member {member_id} on {day}"
        )


class EarningWindowExpired(TerminalError):
    """Member's earning window has closed."""

    def __init__(self, member_id: int, until: object) -> None:
        self.member_id = member_id
        self.until = until
        super().__init__(
            f"Earning window for member {member_id} ended at {until}"
        )


class TransientStoreError(ReferralEngineError):
    """Store failure that is safe to retry with an idempotent re-invocation."""


# Exception categories based on handling strategy

# Safe to retry - idempotent operations may be re-invoked
RETRYABLE = (
    TransientStoreError,
)

# Must not retry - translated by callers into informational messages
TERMINAL = (
    AlreadyCreditedToday,
    EarningWindowExpired,
)


def is_retryable(exc: Exception) -> bool:
    """
    Check if exception can be retried.

    Args:
        exc: Exception to check

    Returns:
        True if caller may retry the operation
    """
    return isinstance(exc, RETRYABLE)


def is_terminal(exc: Exception) -> bool:
    """
    Check if exception is a terminal business outcome.

    Args:
        exc: Exception to check

    Returns:
        True if exception must not be retried
    """
    return isinstance(exc, TERMINAL)


def is_transient_store_failure(exc: Exception) -> bool:
    """
    Check if a SQLAlchemy exception indicates a connectivity problem.

    Args:
        exc: Exception raised by the store

    Returns:
        True for operational errors and invalidated connections
    """
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated

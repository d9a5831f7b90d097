"""
Notification adapter.

Engine operations collect NotificationEvents while their transaction is
open and hand them to a NotificationDispatcher after commit. Delivery
transport is external; the dispatcher only talks to a NotificationSink.
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from loguru import logger

from referral_engine.config.business_constants import NOTIFICATION_TIMEOUT


class NotificationKind(StrEnum):
    """Member-facing event types produced by the engine."""

    COMMISSION_CREDITED = "commission_credited"
    WINDOW_EXTENDED = "window_extended"
    DAILY_EARNING_CREDITED = "daily_earning_credited"
    MEMBERSHIP_ACTIVATED = "membership_activated"
    MEMBERSHIP_EXPIRED = "membership_expired"
    EXPIRY_NOTICE = "expiry_notice"
    URGENT_EXPIRY_NOTICE = "urgent_expiry_notice"


@dataclass(frozen=True)
class NotificationEvent:
    """Single notification addressed to a member."""

    kind: NotificationKind
    member_id: int
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationSink(Protocol):
    """Delivery transport (email, push, in-app feed)."""

    async def send(self, event: NotificationEvent) -> None:
        ...


class LoggingNotificationSink:
    """Default sink: writes events to the log."""

    async def send(self, event: NotificationEvent) -> None:
        logger.info(
            f"Notification {event.kind} for member {event.member_id}",
            extra={
                "kind": str(event.kind),
                "member_id": event.member_id,
                "payload": event.payload,
            },
        )


class NotificationDispatcher:
    """
    Delivers events to a sink after the owning transaction committed.

    Delivery failures are logged and suppressed: a notification can
    never undo or fail a committed ledger change.
    """

    def __init__(
        self,
        sink: NotificationSink | None = None,
        timeout: float = NOTIFICATION_TIMEOUT,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            sink: Delivery transport (defaults to LoggingNotificationSink)
            timeout: Per-event delivery timeout in seconds
        """
        self.sink = sink or LoggingNotificationSink()
        self.timeout = timeout

    async def dispatch(self, events: Iterable[NotificationEvent]) -> int:
        """
        Deliver events one by one.

        Args:
            events: Events to deliver

        Returns:
            Number of events delivered successfully
        """
        delivered = 0
        for event in events:
            try:
                await asyncio.wait_for(
                    self.sink.send(event), timeout=self.timeout
                )
                delivered += 1
            except Exception as e:
                logger.error(
                    "Failed to deliver notification",
                    extra={
                        "error": repr(e),
                        "kind": str(event.kind),
                        "member_id": event.member_id,
                    },
                )
        return delivered

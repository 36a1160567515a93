"""Customer notifications for booking outcomes and waitlist promotions.

Senders render the message text and deliver it. The dispatcher runs sends
as background tasks so a slow or failing channel never delays or fails a
booking.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime

from reservation_engine.config import NotificationSettings
from reservation_engine.core.exceptions import NotificationError
from reservation_engine.core.log import get_logger
from reservation_engine.db.models.reservation import ReservationStatus
from reservation_engine.integrations.sms import SMSGateway, SMSMessage, create_sms_gateway

log = get_logger(__name__)


# =============================================================================
# Message Texts
# =============================================================================


def render_booking_outcome(
    customer_name: str,
    restaurant_name: str,
    start_time: datetime,
    status: ReservationStatus,
) -> str | None:
    """Message text for a reservation status, None when nothing is sent."""
    when = start_time.strftime("%Y-%m-%d %H:%M")

    if status == ReservationStatus.CONFIRMED:
        return (
            f"Hi {customer_name}, your table at {restaurant_name} is CONFIRMED "
            f"for {when}. See you then!"
        )
    if status == ReservationStatus.WAITLIST:
        return (
            f"Hi {customer_name}, {restaurant_name} is full, but you're on the "
            f"WAITLIST for {when}. We'll alert you if a spot opens!"
        )
    if status == ReservationStatus.CANCELLED:
        return f"Hi {customer_name}, your reservation at {restaurant_name} has been CANCELLED."
    return None


def render_promotion_alert(customer_name: str, restaurant_name: str) -> str:
    return (
        f"Good news {customer_name}! A spot opened up at {restaurant_name}. "
        "Your waitlist entry has been upgraded to a CONFIRMED reservation!"
    )


# =============================================================================
# Senders
# =============================================================================


class NotificationSender(ABC):
    """Delivers customer-facing messages."""

    async def send_booking_outcome(
        self,
        customer_name: str,
        customer_phone: str,
        restaurant_name: str,
        start_time: datetime,
        status: ReservationStatus,
    ) -> None:
        body = render_booking_outcome(customer_name, restaurant_name, start_time, status)
        if body is not None:
            await self.deliver(customer_phone, body)

    async def send_promotion_alert(
        self,
        customer_name: str,
        customer_phone: str,
        restaurant_name: str,
    ) -> None:
        await self.deliver(customer_phone, render_promotion_alert(customer_name, restaurant_name))

    @abstractmethod
    async def deliver(self, customer_phone: str, body: str) -> None:
        """Send one rendered message.

        Raises:
            NotificationError: Delivery failed
        """
        pass

    async def close(self) -> None:
        """Release channel resources."""


class LoggingNotificationSender(NotificationSender):
    """Writes messages to the log instead of a real channel."""

    async def deliver(self, customer_phone: str, body: str) -> None:
        log.info("Customer notification", to=customer_phone, message=body)


class SMSNotificationSender(NotificationSender):
    """Sends messages as SMS through a gateway."""

    def __init__(self, gateway: SMSGateway, sender_name: str | None = None):
        self._gateway = gateway
        self._sender_name = sender_name

    @property
    def gateway(self) -> SMSGateway:
        return self._gateway

    async def deliver(self, customer_phone: str, body: str) -> None:
        if self._sender_name:
            body = f"{self._sender_name}: {body}"

        result = await self._gateway.send(SMSMessage(to=customer_phone, body=body))
        if not result.success:
            raise NotificationError(
                "SMS delivery failed",
                details={"provider": result.provider, "error": result.error_message},
            )

    async def close(self) -> None:
        await self._gateway.close()


def create_notification_sender(settings: NotificationSettings) -> NotificationSender:
    """Build the sender for the configured provider."""
    if settings.provider == "log":
        return LoggingNotificationSender()
    if settings.provider in ("mock", "twilio"):
        return SMSNotificationSender(create_sms_gateway(settings), settings.sender_name)
    raise ValueError(f"Unknown notification provider: {settings.provider}")


# =============================================================================
# Dispatcher
# =============================================================================


class NotificationDispatcher:
    """Fire-and-forget front for a NotificationSender.

    Each send runs in its own task. Failures are logged and counted, never
    raised to the caller.
    """

    def __init__(self, sender: NotificationSender, *, enabled: bool = True):
        self._sender = sender
        self._enabled = enabled
        self._tasks: set[asyncio.Task] = set()
        self.sent = 0
        self.failed = 0

    @property
    def sender(self) -> NotificationSender:
        return self._sender

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def booking_outcome(
        self,
        customer_name: str,
        customer_phone: str,
        restaurant_name: str,
        start_time: datetime,
        status: ReservationStatus,
    ) -> None:
        self._schedule(
            "booking_outcome",
            self._sender.send_booking_outcome(
                customer_name, customer_phone, restaurant_name, start_time, status
            ),
        )

    def promotion_alert(
        self,
        customer_name: str,
        customer_phone: str,
        restaurant_name: str,
    ) -> None:
        self._schedule(
            "promotion_alert",
            self._sender.send_promotion_alert(customer_name, customer_phone, restaurant_name),
        )

    def _schedule(self, kind: str, coro) -> None:
        if not self._enabled:
            coro.close()
            return

        task = asyncio.create_task(self._run(kind, coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, kind: str, coro) -> None:
        try:
            await coro
            self.sent += 1
        except Exception as e:
            self.failed += 1
            log.error("Notification failed", kind=kind, error=str(e))

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for in-flight sends, cancelling any still running at timeout."""
        if not self._tasks:
            return

        tasks = list(self._tasks)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            log.warning("Notifications cancelled at shutdown", count=len(pending))

    async def close(self) -> None:
        await self.drain()
        await self._sender.close()

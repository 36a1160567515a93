"""Base SMS Gateway Interface.

Defines the abstract interface for SMS gateways used to deliver booking
notifications.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from reservation_engine.core.log import get_logger

log = get_logger(__name__)


class SMSStatus(str, Enum):
    """Status of an SMS message."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class SMSMessage:
    """SMS message to send."""

    to: str  # Phone number, normalized to E.164 by the gateway
    body: str
    from_number: str | None = None
    reference: str | None = None  # e.g. reservation id


@dataclass
class SMSResult:
    """Result of an SMS send operation."""

    success: bool
    message_id: str | None = None
    status: SMSStatus = SMSStatus.UNKNOWN
    provider: str = ""
    error_message: str | None = None
    sent_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "message_id": self.message_id,
            "status": self.status.value,
            "provider": self.provider,
            "error_message": self.error_message,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }


class SMSGateway(ABC):
    """Abstract base class for SMS gateways."""

    @abstractmethod
    async def send(self, message: SMSMessage) -> SMSResult:
        """Send a single SMS message.

        Args:
            message: SMS message to send

        Returns:
            Result with success status and message ID
        """
        pass

    async def close(self) -> None:
        """Release network resources."""

    def normalize_phone(self, phone: str) -> str:
        """Strip formatting and convert a 00 prefix to +.

        Args:
            phone: Phone number in any format

        Returns:
            Digits with an optional leading +
        """
        phone = "".join(c for c in phone if c.isdigit() or c == "+")
        if phone.startswith("00"):
            phone = "+" + phone[2:]
        return phone


class MockSMSGateway(SMSGateway):
    """Mock SMS gateway for development and testing."""

    def __init__(self):
        self._sent_messages: list[dict[str, Any]] = []

    async def send(self, message: SMSMessage) -> SMSResult:
        """Mock send - logs message and returns success."""
        message_id = str(uuid4())
        normalized_to = self.normalize_phone(message.to)
        sent_at = datetime.now(timezone.utc)

        log.info(
            "Mock SMS sent",
            message_id=message_id,
            to=normalized_to,
            body_length=len(message.body),
        )

        self._sent_messages.append({
            "message_id": message_id,
            "to": normalized_to,
            "body": message.body,
            "reference": message.reference,
            "sent_at": sent_at,
        })

        return SMSResult(
            success=True,
            message_id=message_id,
            status=SMSStatus.SENT,
            provider="mock",
            sent_at=sent_at,
        )

    def get_sent_messages(self) -> list[dict[str, Any]]:
        """Get list of all sent messages (for testing)."""
        return self._sent_messages.copy()

    def clear_sent_messages(self) -> None:
        """Clear sent messages list (for testing)."""
        self._sent_messages.clear()

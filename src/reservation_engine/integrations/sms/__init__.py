"""SMS gateways for customer notifications.

Supported providers:
- twilio: Twilio REST API over httpx
- mock: in-memory gateway for development and testing
"""

from __future__ import annotations

from reservation_engine.config import NotificationSettings
from reservation_engine.core.log import get_logger
from reservation_engine.integrations.sms.base import (
    MockSMSGateway,
    SMSGateway,
    SMSMessage,
    SMSResult,
    SMSStatus,
)

log = get_logger(__name__)


def create_sms_gateway(settings: NotificationSettings) -> SMSGateway:
    """Build the SMS gateway for the configured provider.

    Falls back to the mock gateway when Twilio credentials are missing.
    """
    if settings.provider != "twilio":
        return MockSMSGateway()

    twilio = settings.twilio
    if not twilio.account_sid or not twilio.auth_token:
        log.warning("Twilio credentials not configured, using mock SMS")
        return MockSMSGateway()

    from reservation_engine.integrations.sms.twilio import TwilioSMSGateway

    log.info("Twilio SMS gateway initialized", from_number=twilio.from_number)
    return TwilioSMSGateway(
        account_sid=twilio.account_sid,
        auth_token=twilio.auth_token,
        from_number=twilio.from_number,
        messaging_service_sid=twilio.messaging_service_sid or None,
    )


__all__ = [
    "SMSGateway",
    "SMSMessage",
    "SMSResult",
    "SMSStatus",
    "MockSMSGateway",
    "create_sms_gateway",
]

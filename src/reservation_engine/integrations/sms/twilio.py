"""Twilio SMS Gateway Implementation.

Sends booking notifications through the Twilio Messages REST API.
"""
from __future__ import annotations

from datetime import datetime, timezone

import httpx

from reservation_engine.core.log import get_logger
from reservation_engine.integrations.sms.base import (
    SMSGateway,
    SMSMessage,
    SMSResult,
    SMSStatus,
)

log = get_logger(__name__)


# Twilio status to our status mapping
TWILIO_STATUS_MAP: dict[str, SMSStatus] = {
    "queued": SMSStatus.PENDING,
    "sending": SMSStatus.PENDING,
    "sent": SMSStatus.SENT,
    "delivered": SMSStatus.DELIVERED,
    "failed": SMSStatus.FAILED,
    "undelivered": SMSStatus.FAILED,
    "canceled": SMSStatus.FAILED,
}


class TwilioSMSGateway(SMSGateway):
    """Twilio SMS gateway implementation.

    API Documentation: https://www.twilio.com/docs/sms/api
    """

    API_BASE = "https://api.twilio.com/2010-04-01"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        messaging_service_sid: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Twilio SMS gateway.

        Args:
            account_sid: Twilio Account SID
            auth_token: Twilio Auth Token
            from_number: Default sender phone number (E.164 format)
            messaging_service_sid: Optional Messaging Service SID
            timeout: HTTP request timeout
            transport: Optional httpx transport (tests)
        """
        self.account_sid = account_sid
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid

        self._client = httpx.AsyncClient(
            base_url=f"{self.API_BASE}/Accounts/{account_sid}",
            auth=httpx.BasicAuth(account_sid, auth_token),
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def send(self, message: SMSMessage) -> SMSResult:
        """Send SMS via Twilio API.

        Args:
            message: SMS message to send

        Returns:
            Result with success status and Twilio message SID
        """
        normalized_to = self.normalize_phone(message.to)

        data = {
            "To": normalized_to,
            "Body": message.body,
        }
        if self.messaging_service_sid:
            data["MessagingServiceSid"] = self.messaging_service_sid
        else:
            data["From"] = message.from_number or self.from_number

        try:
            response = await self._client.post("/Messages.json", data=data)
        except httpx.TimeoutException:
            log.error("Twilio SMS timeout", to=normalized_to)
            return SMSResult(
                success=False,
                status=SMSStatus.FAILED,
                provider="twilio",
                error_message="Request timeout",
            )
        except httpx.HTTPError as e:
            log.error("Twilio SMS HTTP error", error=str(e), to=normalized_to)
            return SMSResult(
                success=False,
                status=SMSStatus.FAILED,
                provider="twilio",
                error_message=str(e),
            )

        if response.status_code in (200, 201):
            result_data = response.json()
            message_sid = result_data.get("sid", "")
            status = result_data.get("status", "queued")

            log.info(
                "SMS sent via Twilio",
                message_sid=message_sid,
                to=normalized_to,
                status=status,
            )
            return SMSResult(
                success=True,
                message_id=message_sid,
                status=TWILIO_STATUS_MAP.get(status, SMSStatus.PENDING),
                provider="twilio",
                sent_at=datetime.now(timezone.utc),
            )

        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {}
        error_code = str(error_data.get("code", response.status_code))
        error_message = error_data.get("message", f"HTTP {response.status_code}")

        log.error(
            "Twilio SMS failed",
            status_code=response.status_code,
            error_code=error_code,
            error=error_message,
            to=normalized_to,
        )
        return SMSResult(
            success=False,
            status=SMSStatus.FAILED,
            provider="twilio",
            error_message=f"[{error_code}] {error_message}",
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

"""Test fixtures for SMS integration tests."""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from reservation_engine.integrations.sms.base import SMSMessage


class TwilioStub:
    """Recording request handler for httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 201
        self.payload: dict = {
            "sid": "SM123456789",
            "status": "queued",
            "to": "+49123456789",
            "from": "+4930123456",
        }
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)

    def form(self, index: int = -1) -> dict[str, str]:
        """Form fields of a recorded request."""
        body = parse_qs(self.requests[index].content.decode())
        return {key: values[0] for key, values in body.items()}


@pytest.fixture
def twilio_stub():
    return TwilioStub()


@pytest_asyncio.fixture
async def twilio_gateway(twilio_stub):
    """TwilioSMSGateway talking to the recording stub."""
    from reservation_engine.integrations.sms.twilio import TwilioSMSGateway

    gateway = TwilioSMSGateway(
        account_sid="AC123456789",
        auth_token="test_auth_token",
        from_number="+4930123456",
        transport=httpx.MockTransport(twilio_stub),
    )
    yield gateway
    await gateway.close()


@pytest.fixture
def sample_sms_message():
    """Sample booking confirmation SMS."""
    return SMSMessage(
        to="0049 123 456789",
        body="Hi Anna, your table at Trattoria Roma is CONFIRMED for 2026-06-02 19:00.",
        reference="reservation-1",
    )

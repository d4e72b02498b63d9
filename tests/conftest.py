import pytest
from fastapi.testclient import TestClient

from services.relay.config import Settings
from services.relay.main import create_app
from services.relay.mailer import DeliveryResult, EmailMessage


class RecordingMailer:
    """Stands in for Resend; records every message it is asked to send"""

    provider_name = "Resend"

    def __init__(self, result: DeliveryResult = None, exc: Exception = None):
        self.result = result or DeliveryResult(ok=True, message_id="msg_123")
        self.exc = exc
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> DeliveryResult:
        self.sent.append(message)
        if self.exc is not None:
            raise self.exc
        return self.result


@pytest.fixture
def settings():
    return Settings(
        support_email_to=("it@example.com",),
        support_email_from="Golpac IT <support@example.com>",
        resend_api_key="re_test_key",
        max_body_bytes=64 * 1024,
    )


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def client(settings, mailer):
    return TestClient(create_app(settings=settings, mailer=mailer))


@pytest.fixture
def minimal_payload():
    return {"subject": "S", "description": "D"}

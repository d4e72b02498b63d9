"""
Resend Mailer
Delivers rendered ticket emails through the Resend REST API
"""

from typing import Optional, Protocol

import httpx
import structlog
from pydantic import BaseModel, Field

from shared.schemas.ticket import Attachment

logger = structlog.get_logger()


class EmailMessage(BaseModel):
    """Provider-neutral outbound email"""
    sender: str
    to: list[str]
    subject: str
    text: str
    html: str
    reply_to: Optional[str] = None
    attachments: list[Attachment] = Field(default_factory=list)


class DeliveryResult(BaseModel):
    """Outcome of a single send attempt"""
    ok: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class Mailer(Protocol):
    provider_name: str

    async def send(self, message: EmailMessage) -> DeliveryResult:
        ...


class ResendMailer:
    """
    Client for the Resend emails endpoint.

    One POST per message, no retries. Provider-side rejections and transport
    failures both come back as DeliveryResult(ok=False).
    """

    provider_name = "Resend"

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    def build_payload(self, message: EmailMessage) -> dict:
        payload = {
            "from": message.sender,
            "to": message.to,
            "subject": message.subject,
            "text": message.text,
            "html": message.html,
        }
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": att.filename,
                    "content": att.content,
                    "content_type": att.content_type,
                    **({"content_id": att.content_id} if att.content_id else {}),
                }
                for att in message.attachments
            ]
        return payload

    async def send(self, message: EmailMessage) -> DeliveryResult:
        """Send one email and report the provider outcome"""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=self.build_payload(message), headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Resend request failed", error=str(e), error_type=type(e).__name__)
            return DeliveryResult(ok=False, error=str(e) or type(e).__name__)

        if response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            message_id = body.get("id") if isinstance(body, dict) else None
            return DeliveryResult(ok=True, message_id=message_id)

        return DeliveryResult(ok=False, error=self._error_message(response))

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract the provider error message from a non-2xx reply"""
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}: {response.text[:200]}"
        if isinstance(body, dict):
            detail = body.get("message") or body.get("error") or body.get("name")
            if detail:
                return f"HTTP {response.status_code}: {detail}"
        return f"HTTP {response.status_code}"

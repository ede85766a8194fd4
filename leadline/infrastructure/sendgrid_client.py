"""SendGrid email transport."""

import asyncio
import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, To

from leadline.infrastructure.transports.base import EmailContent, MessageTransport, TransportOutcome
from leadline.settings import settings

logger = logging.getLogger(__name__)


class SendGridEmailTransport(MessageTransport):
    """Sends email via SendGrid.

    Falls back to global settings when credentials are not passed in.
    """

    provider = "sendgrid"

    def __init__(self, api_key: str | None = None, from_email: str | None = None) -> None:
        self.api_key = api_key or settings.sendgrid_api_key
        self.from_email = from_email or settings.sendgrid_from_email
        self._client: SendGridAPIClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.from_email)

    @property
    def client(self) -> SendGridAPIClient:
        if self._client is None:
            self._client = SendGridAPIClient(self.api_key)
        return self._client

    def build_message(self, to: str, content: EmailContent) -> Mail:
        return Mail(
            from_email=Email(self.from_email),
            to_emails=To(to),
            subject=content.subject,
            plain_text_content=Content("text/plain", content.text),
            html_content=Content("text/html", content.html),
        )

    async def send(self, to: str, content: EmailContent) -> TransportOutcome:
        """Send an email without blocking the event loop.

        Raises:
            RuntimeError: If SendGrid rejects the message
        """
        if not self.configured:
            raise RuntimeError("SendGrid transport is not configured")
        message = self.build_message(to, content)
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, self.client.send, message)

        if response.status_code >= 300:
            raise RuntimeError(f"SendGrid returned {response.status_code}")

        message_id = response.headers.get("X-Message-Id") if response.headers else None
        logger.info(
            "Email sent",
            extra={"to_email": to, "subject": content.subject, "status_code": response.status_code},
        )
        return TransportOutcome(success=True, provider=self.provider, provider_message_id=message_id)

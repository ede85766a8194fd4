"""Twilio client wrapper for sending SMS and validating webhooks."""

import asyncio
import logging
from typing import Any, Mapping

from twilio.request_validator import RequestValidator
from twilio.rest import Client as TwilioClient

from leadline.infrastructure.transports.base import MessageTransport, TransportOutcome
from leadline.settings import settings

logger = logging.getLogger(__name__)


class TwilioSmsTransport(MessageTransport):
    """Sends SMS through the Twilio REST API."""

    provider = "twilio"

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
    ) -> None:
        """Initialize Twilio transport.

        Args:
            account_sid: Twilio account SID (defaults to settings)
            auth_token: Twilio auth token (defaults to settings)
            from_number: Default sender number (defaults to settings)
        """
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.from_number = from_number or settings.twilio_phone_number
        self._client: TwilioClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    @property
    def client(self) -> TwilioClient:
        if self._client is None:
            self._client = TwilioClient(self.account_sid, self.auth_token)
        return self._client

    def send_sms(
        self,
        to: str,
        body: str,
        from_: str | None = None,
        status_callback: str | None = None,
    ) -> dict[str, Any]:
        """Send an SMS message (blocking).

        Raises:
            TwilioException: If sending fails
        """
        kwargs: dict[str, Any] = {"to": to, "from_": from_ or self.from_number, "body": body}
        if status_callback:
            kwargs["status_callback"] = status_callback
        message = self.client.messages.create(**kwargs)
        return {"sid": message.sid, "status": message.status}

    async def send(
        self,
        to: str,
        content: str,
        from_: str | None = None,
        status_callback: str | None = None,
    ) -> TransportOutcome:
        """Send an SMS without blocking the event loop."""
        if not self.configured:
            raise RuntimeError("Twilio transport is not configured")
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None,
            lambda: self.send_sms(to, content, from_=from_, status_callback=status_callback),
        )
        logger.info(
            "SMS sent",
            extra={"to_number": to, "message_sid": result["sid"], "sms_status": result["status"]},
        )
        return TransportOutcome(success=True, provider=self.provider, provider_message_id=result["sid"])


def validate_twilio_signature(
    auth_token: str,
    url: str,
    params: Mapping[str, Any],
    signature: str,
) -> bool:
    """Validate an X-Twilio-Signature header against the full URL and form body."""
    if not signature:
        return False
    validator = RequestValidator(auth_token)
    return validator.validate(url, dict(params), signature)

"""FastAPI dependencies for webhooks and lead intake."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.infrastructure.notifications import NotificationDispatcher
from leadline.infrastructure.transports.base import MessageTransport
from leadline.infrastructure.twilio_client import TwilioSmsTransport, validate_twilio_signature
from leadline.persistence.database import get_db
from leadline.settings import settings

logger = logging.getLogger(__name__)


def get_notification_dispatcher() -> NotificationDispatcher:
    """Dispatcher wired to SendGrid and Twilio from settings."""
    return NotificationDispatcher.from_settings()


def get_sms_transport() -> MessageTransport:
    """Transport used for SMS sent directly to callers."""
    return TwilioSmsTransport()


def _public_url(request: Request) -> str:
    """URL Twilio signed: the configured public base plus the request path and query."""
    if settings.twilio_webhook_url_base:
        url = settings.twilio_webhook_url_base.rstrip("/") + request.url.path
        if request.url.query:
            url += f"?{request.url.query}"
        return url
    return str(request.url)


async def verify_twilio_request(request: Request) -> None:
    """Reject webhook requests whose X-Twilio-Signature does not match.

    Skipped when no auth token is configured or validation is turned off.

    Raises:
        HTTPException: 403 on a missing or invalid signature
    """
    if not settings.twilio_validate_signatures or not settings.twilio_auth_token:
        return

    form = await request.form()
    signature = request.headers.get("X-Twilio-Signature", "")
    params = {key: form[key] for key in form}
    if not validate_twilio_signature(settings.twilio_auth_token, _public_url(request), params, signature):
        logger.warning("Invalid Twilio signature", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")


DbSession = Annotated[AsyncSession, Depends(get_db)]
Dispatcher = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]
SmsTransport = Annotated[MessageTransport, Depends(get_sms_transport)]

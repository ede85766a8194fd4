"""Notification dispatcher for tenant alerts (email + SMS).

A lead-worthy event (new lead, voicemail, missed call) fans out to every
channel at once. Each channel is bounded by its own timeout and reports its
own outcome; nothing raised by a channel ever reaches the caller, because
the caller is usually a webhook whose response Twilio is waiting on.
"""

import asyncio
import html
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from leadline.infrastructure.sendgrid_client import SendGridEmailTransport
from leadline.infrastructure.transports.base import EmailContent, MessageTransport
from leadline.infrastructure.twilio_client import TwilioSmsTransport
from leadline.persistence.models.tenant import Tenant
from leadline.settings import settings

logger = logging.getLogger(__name__)

NotificationKind = Literal["new_lead", "voicemail", "missed_call"]
ChannelStatus = Literal["sent", "failed", "disabled", "skipped"]


@dataclass
class ChannelResult:
    """Outcome of one channel for one notification."""

    channel: str
    status: ChannelStatus
    recipient: str | None = None
    provider_message_id: str | None = None
    error: str | None = None


@dataclass
class NotificationResult:
    """Outcome of every channel for one notification."""

    kind: str
    tenant_id: int
    channels: dict[str, ChannelResult] = field(default_factory=dict)

    def status(self, channel: str) -> ChannelStatus | None:
        result = self.channels.get(channel)
        return result.status if result else None

    @property
    def any_sent(self) -> bool:
        return any(r.status == "sent" for r in self.channels.values())


@dataclass
class RenderedNotification:
    email: EmailContent
    sms: str


def _line(label: str, value: Any) -> str | None:
    if value in (None, ""):
        return None
    return f"{label}: {value}"


def render_notification(kind: str, tenant: Tenant, payload: dict[str, Any]) -> RenderedNotification:
    """Build the email and SMS bodies for a notification kind.

    Raises:
        ValueError: For an unknown kind
    """
    business = tenant.business_name or "your business"
    caller = payload.get("caller_number") or payload.get("phone") or "Unknown caller"
    timestamp = (payload.get("occurred_at") or datetime.utcnow()).strftime("%b %d, %Y %I:%M %p UTC")

    if kind == "new_lead":
        name = payload.get("full_name") or "Unknown"
        subject = f"New Lead: {business}"
        lines = [
            f"New lead from {name}",
            _line("Phone", payload.get("phone")),
            _line("Email", payload.get("email")),
            _line("Service", payload.get("service_type")),
            _line("Source", payload.get("source")),
            _line("Message", payload.get("message") or "No message provided"),
        ]
        sms = (
            f"🔔 New Lead from {name}\n"
            f"📞 Phone: {payload.get('phone') or 'n/a'}\n"
            f"💬 Message: {payload.get('message') or 'No message'}"
        )
    elif kind == "voicemail":
        transcription = payload.get("transcription") or "Transcription unavailable - please listen to recording"
        subject = f"New Voicemail: {business}"
        lines = [
            f"New voicemail from {caller}",
            _line("Time", timestamp),
            _line("Duration", f"{payload['recording_duration']}s" if payload.get("recording_duration") else None),
            _line("Message", f'"{transcription}"'),
            _line("Listen", payload.get("recording_url")),
        ]
        sms = f'📞 NEW VOICEMAIL\n\nFrom: {caller}\nTime: {timestamp}\n\nMessage:\n"{transcription}"'
        if payload.get("recording_url"):
            sms += f"\n\n🔗 Listen: {payload['recording_url']}"
    elif kind == "missed_call":
        subject = f"Missed Call: {business}"
        lines = [
            f"Missed call from {caller}",
            _line("Time", timestamp),
            _line("Dial status", payload.get("dial_status")),
            _line("Auto-reply", "sent to caller" if payload.get("auto_sms_sent") else None),
        ]
        sms = f"📵 Missed call from {caller} at {timestamp}."
        if payload.get("auto_sms_sent"):
            sms += " We texted them that you'll call back today."
    else:
        raise ValueError(f"Unknown notification kind: {kind}")

    text_lines = [line for line in lines if line]
    html_body = "".join(f"<p>{html.escape(line)}</p>" for line in text_lines)
    return RenderedNotification(
        email=EmailContent(
            subject=subject,
            text="\n".join(text_lines),
            html=f"<html><body><h2>{html.escape(subject)}</h2>{html_body}</body></html>",
        ),
        sms=sms,
    )


class NotificationDispatcher:
    """Fans a notification out to email and SMS, independently and concurrently."""

    def __init__(
        self,
        email_transport: MessageTransport | None = None,
        sms_transport: MessageTransport | None = None,
        *,
        email_enabled: bool | None = None,
        sms_enabled: bool | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.email_transport = email_transport
        self.sms_transport = sms_transport
        self.email_enabled = settings.enable_email_notifications if email_enabled is None else email_enabled
        self.sms_enabled = settings.enable_sms_notifications if sms_enabled is None else sms_enabled
        self.timeout_seconds = settings.notification_timeout_seconds if timeout_seconds is None else timeout_seconds

    @classmethod
    def from_settings(cls) -> "NotificationDispatcher":
        return cls(email_transport=SendGridEmailTransport(), sms_transport=TwilioSmsTransport())

    async def notify(self, kind: str, tenant: Tenant, payload: dict[str, Any]) -> NotificationResult:
        """Send a notification on every channel.

        Args:
            kind: new_lead, voicemail or missed_call
            tenant: Tenant being notified
            payload: Event details used to render the message

        Returns:
            Per-channel outcome. Never raises for a channel failure.
        """
        rendered = render_notification(kind, tenant, payload)
        email_to = tenant.notification_email or settings.notification_fallback_email
        sms_to = tenant.notification_phone or tenant.twilio_forward_to

        email_result, sms_result = await asyncio.gather(
            self._deliver("email", self.email_transport, self.email_enabled, email_to, rendered.email, kind),
            self._deliver("sms", self.sms_transport, self.sms_enabled, sms_to, rendered.sms, kind),
        )
        result = NotificationResult(
            kind=kind,
            tenant_id=tenant.id,
            channels={"email": email_result, "sms": sms_result},
        )
        logger.info(
            "Notification dispatched",
            extra={
                "notification_kind": kind,
                "channel_statuses": {name: r.status for name, r in result.channels.items()},
            },
        )
        return result

    async def _deliver(
        self,
        channel: str,
        transport: MessageTransport | None,
        enabled: bool,
        recipient: str | None,
        content: Any,
        kind: str,
    ) -> ChannelResult:
        if not enabled or transport is None or not transport.configured:
            return ChannelResult(channel=channel, status="disabled")
        if not recipient:
            return ChannelResult(channel=channel, status="skipped")

        try:
            outcome = await asyncio.wait_for(transport.send(recipient, content), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                f"{channel} notification timed out after {self.timeout_seconds}s",
                extra={"notification_kind": kind, "channel": channel},
            )
            return ChannelResult(channel=channel, status="failed", recipient=recipient, error="timed out")
        except Exception as e:
            logger.error(
                f"{channel} notification failed: {e}",
                exc_info=True,
                extra={"notification_kind": kind, "channel": channel},
            )
            return ChannelResult(channel=channel, status="failed", recipient=recipient, error=str(e))

        if not outcome.success:
            return ChannelResult(channel=channel, status="failed", recipient=recipient, error=outcome.error)
        return ChannelResult(
            channel=channel,
            status="sent",
            recipient=recipient,
            provider_message_id=outcome.provider_message_id,
        )

"""Call event state machine.

A call's life is reconstructed from independent webhook deliveries, any of
which may be retried or arrive out of order. State lives only in the
``call_logs`` row keyed by CallSid:

- the inbound webhook creates the row in ``ringing``;
- status callbacks move ``status`` (last write wins) and set the
  monotonic fields (``answered_at``, ``ended_at``) once;
- the dial action records the forward-to-owner outcome and, for a missed
  call, claims the auto-SMS and missed-call notification flags before
  acting on them, so a retry never repeats either side effect.

Side effects (SMS, notifications) run only after the tenant scope has
committed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadline.core.tenant_context import tenant_scope
from leadline.domain.services.lead_service import LeadService
from leadline.domain.services.opt_in_service import OptInService
from leadline.domain.services.tenant_resolver import TenantResolver
from leadline.domain.telephony_status import (
    TERMINAL_CALL_STATUSES,
    CallStatus,
    DialStatus,
    normalize_call_status,
    normalize_dial_status,
    normalize_direction,
)
from leadline.infrastructure.notifications import NotificationDispatcher, NotificationResult
from leadline.infrastructure.transports.base import MessageTransport
from leadline.persistence.models.call_log import CallLog
from leadline.persistence.models.tenant import Tenant
from leadline.persistence.repositories.call_log_repository import CallLogRepository
from leadline.settings import settings

logger = logging.getLogger(__name__)

TRANSCRIPTION_UNAVAILABLE = "Transcription unavailable - please listen to recording"

# Recordings made by <Dial record=...> capture the owner conversation, not a voicemail
DIAL_RECORDING_SOURCE = "DialVerb"


@dataclass
class InboundCall:
    call_sid: str
    from_number: str
    to_number: str
    account_sid: str | None = None
    direction: str | None = None
    caller_city: str | None = None
    caller_state: str | None = None
    caller_zip: str | None = None
    caller_country: str | None = None


@dataclass
class CallRouting:
    """What to tell Twilio to do with a new call."""

    tenant: Tenant | None
    forward_to: str | None = None
    persisted: bool = False


@dataclass
class CallStatusUpdate:
    call_sid: str
    raw_status: str | None = None
    to_number: str | None = None
    from_number: str | None = None
    direction: str | None = None
    duration: int | None = None
    recording_url: str | None = None
    recording_sid: str | None = None
    recording_duration: int | None = None
    recording_source: str | None = None
    transcription_text: str | None = None
    transcription_status: str | None = None


@dataclass
class CallStatusResult:
    tenant_id: int
    status: str
    voicemail_notification: NotificationResult | None = None


@dataclass
class DialOutcome:
    tenant_id: int
    dial_status: DialStatus
    connected: bool
    auto_sms: str = "not_needed"  # sent, failed, opted_out, already_sent, disabled, not_needed
    notification: NotificationResult | None = None
    lead_id: int | None = None

    @property
    def missed(self) -> bool:
        return not self.connected


@dataclass
class _MissedCallWork:
    send_sms: bool = False
    notify: bool = False
    payload: dict[str, Any] = field(default_factory=dict)


def render_auto_sms(tenant: Tenant) -> str:
    business_name = settings.sms_business_name or tenant.business_name or "our team"
    return settings.auto_sms_template.replace("{business_name}", business_name)


class CallService:
    """Advances the call state machine for one webhook delivery."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher,
        sms_transport: MessageTransport | None = None,
        resolver: TenantResolver | None = None,
    ) -> None:
        self.session = session
        self.dispatcher = dispatcher
        self.sms_transport = sms_transport
        self.resolver = resolver or TenantResolver(session)
        self.call_repo = CallLogRepository(session)

    @staticmethod
    def forward_target(tenant: Tenant) -> str | None:
        return tenant.twilio_forward_to or settings.owner_phone_number

    async def _tenant_for_call(self, call_sid: str, to_number: str | None) -> Tenant | None:
        """Owner of a call: from its row when one exists, else from the dialed number."""
        tenant_id = await self.call_repo.get_tenant_id_for_call(call_sid)
        if tenant_id is not None:
            return await self.resolver.resolve_by_id(tenant_id)
        return await self.resolver.resolve_by_phone_number(to_number)

    async def on_incoming_call(self, call: InboundCall) -> CallRouting:
        """Resolve the dialed number and record the call in ``ringing``.

        A failure to write the row is logged and swallowed: the caller is
        still forwarded. Resolution errors propagate.
        """
        tenant = await self.resolver.resolve_by_phone_number(call.to_number)
        if tenant is None:
            return CallRouting(tenant=None)

        forward_to = self.forward_target(tenant)
        routing = CallRouting(tenant=tenant, forward_to=forward_to)
        try:
            async with tenant_scope(self.session, tenant.id):
                await self.call_repo.upsert(
                    tenant.id,
                    call.call_sid,
                    account_sid=call.account_sid,
                    from_number=call.from_number,
                    to_number=call.to_number,
                    forwarded_to=forward_to,
                    status=CallStatus.RINGING.value,
                    direction=normalize_direction(call.direction).value,
                    caller_city=call.caller_city,
                    caller_state=call.caller_state,
                    caller_zip=call.caller_zip,
                    caller_country=call.caller_country,
                )
            routing.persisted = True
        except (SQLAlchemyError, LookupError):
            logger.error(
                f"Failed to log inbound call {call.call_sid}; forwarding anyway",
                exc_info=True,
                extra={"call_sid": call.call_sid},
            )
        return routing

    async def on_call_status(self, update: CallStatusUpdate) -> CallStatusResult | None:
        """Apply a status, recording or transcription callback.

        Returns None when the call cannot be tied to a tenant. Persistence
        errors propagate so Twilio retries the callback.
        """
        tenant = await self._tenant_for_call(update.call_sid, update.to_number)
        if tenant is None:
            logger.warning("Status callback for unknown call", extra={"call_sid": update.call_sid})
            return None

        status, recognized = normalize_call_status(update.raw_status)
        voicemail_payload: dict[str, Any] | None = None

        async with tenant_scope(self.session, tenant.id):
            call_log = await self.call_repo.upsert(
                tenant.id,
                update.call_sid,
                lock=True,
                from_number=update.from_number or "",
                to_number=update.to_number or "",
                status=status.value,
                direction=normalize_direction(update.direction).value,
            )
            self._apply_status(call_log, status, recognized, update)
            if self._voicemail_ready(call_log, update):
                call_log.voicemail_notified = True
                transcription = call_log.transcription_text or TRANSCRIPTION_UNAVAILABLE
                call_log.lead_id = await LeadService(self.session).record_lead(
                    tenant.id,
                    "phone",
                    {"phone": call_log.from_number},
                    {"message": f"Voicemail: {transcription}"},
                    lead_id=call_log.lead_id,
                )
                voicemail_payload = {
                    "call_sid": call_log.call_sid,
                    "caller_number": call_log.from_number,
                    "recording_url": call_log.recording_url,
                    "recording_duration": call_log.recording_duration,
                    "transcription": transcription,
                    "lead_id": call_log.lead_id,
                }
            await self.session.flush()
            current_status = call_log.status

        result = CallStatusResult(tenant_id=tenant.id, status=current_status)
        if voicemail_payload is not None:
            result.voicemail_notification = await self.dispatcher.notify("voicemail", tenant, voicemail_payload)
        return result

    def _apply_status(
        self,
        call_log: CallLog,
        status: CallStatus,
        recognized: bool,
        update: CallStatusUpdate,
    ) -> None:
        now = datetime.utcnow()
        if recognized:
            call_log.status = status.value
        if recognized and status == CallStatus.IN_PROGRESS and call_log.answered_at is None:
            call_log.answered_at = now
        if recognized and status in TERMINAL_CALL_STATUSES and call_log.ended_at is None:
            call_log.ended_at = now

        if update.direction:
            call_log.direction = normalize_direction(update.direction).value
        if update.duration and update.duration > 0:
            call_log.duration = update.duration

        if update.recording_url:
            call_log.recording_url = update.recording_url
        if update.recording_sid:
            call_log.recording_sid = update.recording_sid
        if update.recording_duration and update.recording_duration > 0:
            call_log.recording_duration = update.recording_duration
        if update.transcription_text and (update.transcription_status or "").lower() == "completed":
            call_log.transcription_text = update.transcription_text

    @staticmethod
    def _voicemail_ready(call_log: CallLog, update: CallStatusUpdate) -> bool:
        """A voicemail notification is due once per call: ended, recorded, and not a bridged owner call."""
        if call_log.voicemail_notified or call_log.connected_to_owner:
            return False
        if update.recording_source == DIAL_RECORDING_SOURCE:
            return False
        return call_log.status in {s.value for s in TERMINAL_CALL_STATUSES} and bool(call_log.recording_url)

    async def on_dial_status(
        self,
        call_sid: str,
        raw_dial_status: str | None,
        dial_duration: int | None = None,
        to_number: str | None = None,
        from_number: str | None = None,
    ) -> DialOutcome | None:
        """Record the forward-to-owner outcome and handle a missed call.

        The owner counts as connected only for a ``completed`` leg that lasted
        at least ``min_owner_answer_seconds``; a shorter "completed" leg is the
        owner's carrier voicemail picking up. A missed call texts the caller
        and notifies the tenant, at most once each per call.
        """
        tenant = await self._tenant_for_call(call_sid, to_number)
        if tenant is None:
            logger.warning("Dial status for unknown call", extra={"call_sid": call_sid})
            return None

        dial_status = normalize_dial_status(raw_dial_status)
        connected = dial_status == DialStatus.COMPLETED and (
            dial_duration is None or dial_duration >= settings.min_owner_answer_seconds
        )
        outcome = DialOutcome(tenant_id=tenant.id, dial_status=dial_status, connected=connected)
        work = _MissedCallWork()

        async with tenant_scope(self.session, tenant.id):
            call_log = await self.call_repo.upsert(
                tenant.id,
                call_sid,
                lock=True,
                from_number=from_number or "",
                to_number=to_number or "",
                status=CallStatus.IN_PROGRESS.value,
                direction="inbound",
            )
            call_log.dial_status = dial_status.value
            if dial_duration is not None:
                call_log.dial_duration = dial_duration
            call_log.connected_to_owner = connected
            if connected and call_log.owner_answered_at is None:
                call_log.owner_answered_at = datetime.utcnow()
            if not call_log.forwarded_to:
                call_log.forwarded_to = self.forward_target(tenant)

            if not connected:
                await self._claim_missed_call_work(tenant, call_log, outcome, work)
            outcome.lead_id = call_log.lead_id
            await self.session.flush()

        if work.send_sms or work.notify:
            await self._run_missed_call_work(tenant, work, outcome)
        return outcome

    async def _claim_missed_call_work(
        self,
        tenant: Tenant,
        call_log: CallLog,
        outcome: DialOutcome,
        work: _MissedCallWork,
    ) -> None:
        caller = call_log.from_number
        if call_log.lead_id is None and caller:
            call_log.lead_id = await LeadService(self.session).record_lead(
                tenant.id, "phone", {"phone": caller}, {"message": "Missed call"}
            )

        if call_log.auto_sms_sent:
            outcome.auto_sms = "already_sent"
        elif not caller:
            outcome.auto_sms = "not_needed"
        elif not await OptInService(self.session).is_opted_in(tenant.id, caller):
            outcome.auto_sms = "opted_out"
        elif self.sms_transport is None or not self.sms_transport.configured:
            outcome.auto_sms = "disabled"
        else:
            call_log.auto_sms_sent = True
            work.send_sms = True

        if not call_log.missed_call_notified:
            call_log.missed_call_notified = True
            work.notify = True

        work.payload = {
            "call_sid": call_log.call_sid,
            "caller_number": caller,
            "dial_status": outcome.dial_status.value,
            "lead_id": call_log.lead_id,
        }

    async def _run_missed_call_work(self, tenant: Tenant, work: _MissedCallWork, outcome: DialOutcome) -> None:
        """Text the caller, then notify the tenant; a failed text never blocks the alert.

        The alert reports the text as sent only once the send has succeeded.
        """
        if work.send_sms:
            try:
                await asyncio.wait_for(
                    self.sms_transport.send(
                        work.payload["caller_number"],
                        render_auto_sms(tenant),
                        from_=tenant.twilio_phone_number,
                    ),
                    timeout=settings.notification_timeout_seconds,
                )
                outcome.auto_sms = "sent"
            except Exception:
                outcome.auto_sms = "failed"
                logger.error(
                    "Failed to send missed-call auto-SMS",
                    exc_info=True,
                    extra={"call_sid": work.payload["call_sid"]},
                )

        if work.notify:
            payload = {**work.payload, "auto_sms_sent": outcome.auto_sms in ("sent", "already_sent")}
            outcome.notification = await self.dispatcher.notify("missed_call", tenant, payload)

"""Voice webhook endpoints for Twilio."""

import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError

from leadline.api import twiml
from leadline.api.deps import DbSession, Dispatcher, SmsTransport, verify_twilio_request
from leadline.domain.services.call_service import CallService, CallStatusUpdate, InboundCall
from leadline.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_twilio_request)])

CALL_SID_PATTERN = re.compile(r"^CA[0-9A-Za-z]+$")

OptionalForm = Annotated[str | None, Form()]


def _get_webhook_base_url() -> str:
    """Public base URL Twilio calls back to."""
    base = settings.twilio_webhook_url_base or "https://example.com"
    return f"{base.rstrip('/')}{settings.api_v1_prefix}/twilio"


def _require_call_sid(call_sid: str | None) -> str:
    call_sid = (call_sid or "").strip()
    if not CALL_SID_PATTERN.match(call_sid):
        logger.warning("Rejected voice webhook with missing or malformed CallSid", extra={"call_sid": call_sid})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing or invalid CallSid")
    return call_sid


def _to_int(value: str | None) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except ValueError:
        return None


def _voicemail_twiml(business_name: str | None) -> Response:
    base_url = _get_webhook_base_url()
    return twiml.twiml_response(
        twiml.voicemail(
            business_name,
            max_length_seconds=settings.voicemail_max_length_seconds,
            status_callback_url=f"{base_url}/status",
            complete_url=f"{base_url}/voicemail-complete",
        )
    )


@router.post("/voice")
async def inbound_call_webhook(
    db: DbSession,
    dispatcher: Dispatcher,
    CallSid: OptionalForm = None,
    From: OptionalForm = None,
    To: OptionalForm = None,
    AccountSid: OptionalForm = None,
    Direction: OptionalForm = None,
    CallerCity: OptionalForm = None,
    CallerState: OptionalForm = None,
    CallerZip: OptionalForm = None,
    CallerCountry: OptionalForm = None,
) -> Response:
    """Handle an inbound call.

    Forwards to the tenant's number when one is configured, otherwise goes
    straight to voicemail. Unknown numbers get an apology and a hangup.
    """
    call_sid = _require_call_sid(CallSid)
    if not From or not To:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing From or To")

    service = CallService(db, dispatcher)
    routing = await service.on_incoming_call(
        InboundCall(
            call_sid=call_sid,
            from_number=From,
            to_number=To,
            account_sid=AccountSid,
            direction=Direction,
            caller_city=CallerCity,
            caller_state=CallerState,
            caller_zip=CallerZip,
            caller_country=CallerCountry,
        )
    )

    if routing.tenant is None:
        return twiml.twiml_response(twiml.unavailable())

    logger.info(
        "Inbound call routed",
        extra={"call_sid": call_sid, "forwarding": bool(routing.forward_to), "persisted": routing.persisted},
    )
    if not routing.forward_to:
        return _voicemail_twiml(routing.tenant.business_name)

    base_url = _get_webhook_base_url()
    return twiml.twiml_response(
        twiml.forward_call(
            routing.forward_to,
            timeout_seconds=settings.dial_timeout_seconds,
            dial_action_url=f"{base_url}/dial-status",
            recording_callback_url=f"{base_url}/status",
        )
    )


async def _apply_call_status(
    db: DbSession,
    dispatcher: Dispatcher,
    call_sid: str,
    form: dict[str, str | None],
) -> None:
    service = CallService(db, dispatcher)
    await service.on_call_status(
        CallStatusUpdate(
            call_sid=call_sid,
            raw_status=form.get("CallStatus"),
            to_number=form.get("To"),
            from_number=form.get("From"),
            direction=form.get("Direction"),
            duration=_to_int(form.get("CallDuration")),
            recording_url=form.get("RecordingUrl"),
            recording_sid=form.get("RecordingSid"),
            recording_duration=_to_int(form.get("RecordingDuration")),
            recording_source=form.get("RecordingSource"),
            transcription_text=form.get("TranscriptionText"),
            transcription_status=form.get("TranscriptionStatus"),
        )
    )


@router.post("/status")
async def call_status_webhook(
    db: DbSession,
    dispatcher: Dispatcher,
    CallSid: OptionalForm = None,
    CallStatus: OptionalForm = None,
    To: OptionalForm = None,
    From: OptionalForm = None,
    Direction: OptionalForm = None,
    CallDuration: OptionalForm = None,
    RecordingUrl: OptionalForm = None,
    RecordingSid: OptionalForm = None,
    RecordingDuration: OptionalForm = None,
    RecordingSource: OptionalForm = None,
    TranscriptionText: OptionalForm = None,
    TranscriptionStatus: OptionalForm = None,
) -> Response:
    """Handle call status, recording and transcription callbacks.

    Database errors are not caught: a 500 makes Twilio retry, and the
    update is idempotent.
    """
    call_sid = _require_call_sid(CallSid)
    await _apply_call_status(
        db,
        dispatcher,
        call_sid,
        {
            "CallStatus": CallStatus,
            "To": To,
            "From": From,
            "Direction": Direction,
            "CallDuration": CallDuration,
            "RecordingUrl": RecordingUrl,
            "RecordingSid": RecordingSid,
            "RecordingDuration": RecordingDuration,
            "RecordingSource": RecordingSource,
            "TranscriptionText": TranscriptionText,
            "TranscriptionStatus": TranscriptionStatus,
        },
    )
    return twiml.twiml_response(twiml.empty_voice())


@router.post("/voicemail-complete")
async def voicemail_complete_webhook(
    db: DbSession,
    dispatcher: Dispatcher,
    CallSid: OptionalForm = None,
    To: OptionalForm = None,
    From: OptionalForm = None,
    RecordingUrl: OptionalForm = None,
    RecordingSid: OptionalForm = None,
    RecordingDuration: OptionalForm = None,
) -> Response:
    """<Record> action: store the recording and end the call politely."""
    call_sid = _require_call_sid(CallSid)
    try:
        await _apply_call_status(
            db,
            dispatcher,
            call_sid,
            {
                "To": To,
                "From": From,
                "RecordingUrl": RecordingUrl,
                "RecordingSid": RecordingSid,
                "RecordingDuration": RecordingDuration,
            },
        )
    except SQLAlchemyError:
        # The recording status callback delivers the same data again
        logger.error("Failed to store voicemail recording", exc_info=True, extra={"call_sid": call_sid})
    return twiml.twiml_response(twiml.voicemail_complete())


@router.post("/dial-status")
async def dial_status_webhook(
    db: DbSession,
    dispatcher: Dispatcher,
    sms_transport: SmsTransport,
    CallSid: OptionalForm = None,
    DialCallStatus: OptionalForm = None,
    DialCallDuration: OptionalForm = None,
    To: OptionalForm = None,
    From: OptionalForm = None,
) -> Response:
    """Handle the outcome of the forward-to-owner leg.

    Connected calls hang up; anything else falls through to voicemail. A
    database failure is logged and the caller still reaches voicemail.
    """
    call_sid = _require_call_sid(CallSid)
    service = CallService(db, dispatcher, sms_transport=sms_transport)

    try:
        outcome = await service.on_dial_status(
            call_sid,
            DialCallStatus,
            dial_duration=_to_int(DialCallDuration),
            to_number=To,
            from_number=From,
        )
    except SQLAlchemyError:
        logger.error("Failed to record dial status; sending caller to voicemail", exc_info=True, extra={"call_sid": call_sid})
        return _voicemail_twiml(None)

    if outcome is None:
        return _voicemail_twiml(None)

    logger.info(
        "Dial status processed",
        extra={
            "call_sid": call_sid,
            "dial_status": outcome.dial_status.value,
            "connected": outcome.connected,
            "auto_sms": outcome.auto_sms,
        },
    )
    if outcome.connected:
        return twiml.twiml_response(twiml.hangup())

    tenant = await service.resolver.resolve_by_id(outcome.tenant_id)
    return _voicemail_twiml(tenant.business_name if tenant else None)

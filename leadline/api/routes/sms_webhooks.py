"""SMS webhook endpoints for Twilio."""

import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, status
from fastapi.responses import Response

from leadline.api import twiml
from leadline.api.deps import DbSession, Dispatcher, verify_twilio_request
from leadline.domain.services.sms_service import SmsService, describe_reply

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_twilio_request)])

# SM for SMS, MM for MMS
MESSAGE_SID_PATTERN = re.compile(r"^(SM|MM)[0-9A-Za-z]+$")

OptionalForm = Annotated[str | None, Form()]


def _require_message_sid(message_sid: str | None) -> str:
    message_sid = (message_sid or "").strip()
    if not MESSAGE_SID_PATTERN.match(message_sid):
        logger.warning("Rejected SMS webhook with missing or malformed MessageSid", extra={"message_sid": message_sid})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing or invalid MessageSid")
    return message_sid


@router.post("/sms")
async def inbound_sms_webhook(
    db: DbSession,
    dispatcher: Dispatcher,
    MessageSid: OptionalForm = None,
    From: OptionalForm = None,
    To: OptionalForm = None,
    Body: OptionalForm = None,
) -> Response:
    """Handle an inbound SMS.

    Returns the reply as TwiML, or an empty document when there is nothing
    to send. Messages to unknown numbers are acknowledged and dropped.
    Database errors surface as 500 so Twilio retries; a retry of an
    already-processed message is answered without side effects.
    """
    message_sid = _require_message_sid(MessageSid)
    if not From or not To:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing From or To")

    service = SmsService(db, dispatcher=dispatcher)
    reply = await service.on_incoming_sms(To, From, Body, message_sid)

    if reply.tenant is None:
        logger.warning(f"Could not determine tenant for phone number: {To}", extra={"message_sid": message_sid})
        return twiml.twiml_response(twiml.sms_reply(None))

    logger.info("Inbound SMS processed", extra={"message_sid": message_sid, **describe_reply(reply)})
    return twiml.twiml_response(twiml.sms_reply(reply.reply))


@router.post("/sms/status")
async def sms_status_webhook(
    db: DbSession,
    MessageSid: OptionalForm = None,
    MessageStatus: OptionalForm = None,
    SmsStatus: OptionalForm = None,
    ErrorCode: OptionalForm = None,
    ErrorMessage: OptionalForm = None,
) -> Response:
    """Handle SMS delivery status callbacks."""
    message_sid = _require_message_sid(MessageSid)
    service = SmsService(db)
    await service.on_sms_status(
        message_sid,
        MessageStatus or SmsStatus,
        error_code=ErrorCode,
        error_message=ErrorMessage,
    )
    return Response(status_code=status.HTTP_200_OK)

"""TwiML documents returned to Twilio."""

from fastapi.responses import Response
from twilio.twiml.messaging_response import MessagingResponse
from twilio.twiml.voice_response import VoiceResponse

VOICE = "Polly.Joanna"

VOICEMAIL_GREETING = (
    "Hey, thanks for calling {business_name}. Leave your name, number, and a brief "
    "message, and we'll return your call at our earliest convenience. Thank you."
)
VOICEMAIL_CLOSING = "Thank you. We'll be in touch soon."
UNAVAILABLE_MESSAGE = (
    "We're sorry, but we're unable to connect your call at this time. Please try again later."
)


def twiml_response(document: VoiceResponse | MessagingResponse) -> Response:
    return Response(content=str(document), media_type="application/xml")


def forward_call(
    forward_to: str,
    *,
    timeout_seconds: int,
    dial_action_url: str,
    recording_callback_url: str,
) -> VoiceResponse:
    """Dial the owner; Twilio posts the leg's outcome to ``dial_action_url``."""
    response = VoiceResponse()
    dial = response.dial(
        timeout=timeout_seconds,
        action=dial_action_url,
        method="POST",
        record="record-from-answer",
        recording_status_callback=recording_callback_url,
    )
    dial.number(forward_to, machine_detection="Enable")
    return response


def voicemail(
    business_name: str | None,
    *,
    max_length_seconds: int,
    status_callback_url: str,
    complete_url: str,
) -> VoiceResponse:
    """Greeting, then a transcribed recording whose callbacks land on the status URL."""
    response = VoiceResponse()
    response.say(VOICEMAIL_GREETING.format(business_name=business_name or "our team"), voice=VOICE)
    response.record(
        action=complete_url,
        method="POST",
        max_length=max_length_seconds,
        play_beep=True,
        transcribe=True,
        transcribe_callback=status_callback_url,
        recording_status_callback=status_callback_url,
    )
    # Only reached if the caller records nothing
    response.say(VOICEMAIL_CLOSING, voice=VOICE)
    return response


def voicemail_complete() -> VoiceResponse:
    response = VoiceResponse()
    response.say(VOICEMAIL_CLOSING, voice=VOICE)
    response.hangup()
    return response


def hangup() -> VoiceResponse:
    response = VoiceResponse()
    response.hangup()
    return response


def unavailable() -> VoiceResponse:
    """Apology for calls to a number no active tenant owns."""
    response = VoiceResponse()
    response.say(UNAVAILABLE_MESSAGE)
    response.hangup()
    return response


def empty_voice() -> VoiceResponse:
    return VoiceResponse()


def sms_reply(body: str | None) -> MessagingResponse:
    """Reply with ``body``, or an empty document when there is nothing to say."""
    response = MessagingResponse()
    if body:
        response.message(body)
    return response

"""Closed status sets for provider webhooks and the functions that map raw values onto them.

Twilio posts statuses as free-form strings. Every raw value is normalized
here before it touches a state machine, and every unrecognized value has a
documented default so a webhook is never rejected for an odd status.
"""

from enum import Enum


class CallStatus(str, Enum):
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_CALL_STATUSES = frozenset({
    CallStatus.COMPLETED,
    CallStatus.BUSY,
    CallStatus.NO_ANSWER,
    CallStatus.FAILED,
    CallStatus.CANCELED,
})


class DialStatus(str, Enum):
    COMPLETED = "completed"
    NO_ANSWER = "no-answer"
    BUSY = "busy"
    FAILED = "failed"
    CANCELED = "canceled"


class SmsStatus(str, Enum):
    QUEUED = "queued"
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    UNDELIVERED = "undelivered"
    FAILED = "failed"
    RECEIVED = "received"


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


def _clean(raw: str | None) -> str:
    return (raw or "").strip().lower()


def normalize_call_status(raw: str | None) -> tuple[CallStatus, bool]:
    """Map a raw CallStatus onto ``CallStatus``.

    Returns:
        (status, recognized). Unknown or empty input yields
        (RINGING, False); callers must not let a defaulted status
        overwrite one already recorded.
    """
    try:
        return CallStatus(_clean(raw)), True
    except ValueError:
        return CallStatus.RINGING, False


def normalize_dial_status(raw: str | None) -> DialStatus:
    """Map a raw DialCallStatus onto ``DialStatus``; unknown or empty is NO_ANSWER."""
    try:
        return DialStatus(_clean(raw))
    except ValueError:
        return DialStatus.NO_ANSWER


def normalize_sms_status(raw: str | None) -> SmsStatus:
    """Map a raw SmsStatus/MessageStatus onto ``SmsStatus``; unknown or empty is RECEIVED."""
    try:
        return SmsStatus(_clean(raw))
    except ValueError:
        return SmsStatus.RECEIVED


def normalize_direction(raw: str | None) -> Direction:
    """Twilio uses "inbound", "outbound-api", "outbound-dial"; empty means inbound."""
    value = _clean(raw)
    if not value or value.startswith("in"):
        return Direction.INBOUND
    return Direction.OUTBOUND

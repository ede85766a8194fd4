"""Tests for provider status normalization."""

import pytest

from leadline.domain.telephony_status import (
    CallStatus,
    DialStatus,
    Direction,
    SmsStatus,
    normalize_call_status,
    normalize_dial_status,
    normalize_direction,
    normalize_sms_status,
)


class TestCallStatus:
    """Raw CallStatus values."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("ringing", CallStatus.RINGING),
            ("in-progress", CallStatus.IN_PROGRESS),
            ("COMPLETED", CallStatus.COMPLETED),
            (" busy ", CallStatus.BUSY),
            ("no-answer", CallStatus.NO_ANSWER),
            ("failed", CallStatus.FAILED),
            ("canceled", CallStatus.CANCELED),
        ],
    )
    def test_known_values_are_recognized(self, raw, expected):
        assert normalize_call_status(raw) == (expected, True)

    @pytest.mark.parametrize("raw", [None, "", "queued", "answered"])
    def test_unknown_values_default_to_ringing_unrecognized(self, raw):
        assert normalize_call_status(raw) == (CallStatus.RINGING, False)


class TestDialStatus:
    """Raw DialCallStatus values."""

    def test_known_value(self):
        assert normalize_dial_status("busy") == DialStatus.BUSY

    @pytest.mark.parametrize("raw", [None, "", "weird-status", "answered"])
    def test_unknown_values_are_no_answer(self, raw):
        assert normalize_dial_status(raw) == DialStatus.NO_ANSWER


def test_sms_status_defaults_to_received():
    assert normalize_sms_status("delivered") == SmsStatus.DELIVERED
    assert normalize_sms_status("accepted") == SmsStatus.RECEIVED
    assert normalize_sms_status(None) == SmsStatus.RECEIVED


def test_direction():
    assert normalize_direction(None) == Direction.INBOUND
    assert normalize_direction("inbound") == Direction.INBOUND
    assert normalize_direction("outbound-dial") == Direction.OUTBOUND
    assert normalize_direction("outbound-api") == Direction.OUTBOUND

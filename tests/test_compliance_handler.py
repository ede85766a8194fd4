"""Tests for SMS compliance keyword handling."""

import pytest

from leadline.domain.compliance_copy import COMPLIANCE_COPY_VERSIONS, get_compliance_copy
from leadline.domain.services.compliance_handler import ComplianceHandler


@pytest.fixture
def handler():
    return ComplianceHandler(get_compliance_copy("2024-01"))


def test_stop_keyword_detection(handler):
    """Test STOP keyword detection."""
    for body in ("STOP", "stop", "  Stop  ", "stopall", "UNSUBSCRIBE", "cancel", "end", "quit"):
        result = handler.check_compliance(body)
        assert result.action == "stop", body
        assert result.response_message == handler.copy.opt_out


def test_start_keyword_detection(handler):
    """Test START keyword detection."""
    for body in ("START", "yes", "unstop", "Confirm", "subscribe"):
        result = handler.check_compliance(body)
        assert result.action == "start", body
        assert result.response_message == handler.copy.opt_in


def test_help_keyword_detection(handler):
    """Test HELP keyword detection."""
    for body in ("HELP", "info", " help\n"):
        result = handler.check_compliance(body)
        assert result.action == "help"
        assert result.response_message == handler.copy.help


def test_keyword_must_be_whole_message(handler):
    """A keyword inside a sentence is an ordinary message."""
    for body in ("please stop calling", "Hello, I need help", "yes please", "", None):
        result = handler.check_compliance(body)
        assert result.action == "allow"
        assert result.response_message is None
        assert not result.is_keyword


def test_keyword_is_recorded_upper_case(handler):
    assert handler.check_compliance(" quit ").keyword == "QUIT"


def test_copy_is_exact():
    """Carrier-registered copy must not drift."""
    copy = COMPLIANCE_COPY_VERSIONS["2024-01"]
    assert copy.opt_out == (
        "✓ nevermisslead.com: You've been unsubscribed from all SMS messages. "
        "You won't receive leads or alerts. To resubscribe, text START or visit "
        "nevermisslead.com. We hope to see you back!"
    )
    assert copy.opt_in == (
        "✓ nevermisslead.com: Your SMS notifications are active! You'll receive "
        "lead alerts here. Text STOP to opt-out or HELP for support. Welcome aboard!"
    )
    assert copy.help == (
        "nevermisslead.com SMS Support: • Text STOP = Unsubscribe from all messages "
        "• Text START = Resubscribe to notifications • Email: support@cherysolutions.com "
        "• Phone: (678) 788-7281"
    )


def test_unknown_copy_version_raises():
    with pytest.raises(KeyError):
        get_compliance_copy("1999-01")

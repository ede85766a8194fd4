"""Tests for structured logging."""

import json
import logging

from leadline.core.tenant_context import tenant_id_var
from leadline.logging_config import ContextFilter, JSONFormatter


def _format(message: str, **extra) -> dict:
    record = logging.LogRecord("leadline.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    ContextFilter().filter(record)
    return json.loads(JSONFormatter().format(record))


def test_extra_fields_are_included():
    data = _format("Inbound call routed", call_sid="CA123", forwarding=True)
    assert data["message"] == "Inbound call routed"
    assert data["severity"] == "INFO"
    assert data["call_sid"] == "CA123"
    assert data["forwarding"] is True
    assert "tenant_id" not in data


def test_tenant_context_is_attached():
    token = tenant_id_var.set(7)
    try:
        data = _format("Lead recorded")
    finally:
        tenant_id_var.reset(token)
    assert data["tenant_id"] == 7


def test_non_json_values_are_stringified():
    data = _format("Dial status processed", dial_status=object())
    assert isinstance(data["dial_status"], str)

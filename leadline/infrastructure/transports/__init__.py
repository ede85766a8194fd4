"""Outbound message transports."""

from leadline.infrastructure.transports.base import EmailContent, MessageTransport, TransportOutcome

__all__ = ["EmailContent", "MessageTransport", "TransportOutcome"]

"""Base transport interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class TransportOutcome:
    """Result of a single send."""

    success: bool
    provider: str
    provider_message_id: str | None = None
    error: str | None = None


@dataclass
class EmailContent:
    """Rendered email: subject plus plain-text and HTML bodies."""

    subject: str
    text: str
    html: str


class MessageTransport(ABC):
    """A channel that can deliver one message to one recipient."""

    provider: str = "unknown"

    @property
    @abstractmethod
    def configured(self) -> bool:
        """False when credentials are missing; sends are then skipped, not attempted."""

    @abstractmethod
    async def send(self, to: str, content: Any) -> TransportOutcome:
        """Deliver ``content`` to ``to``.

        Raises on provider errors; callers decide whether a failure matters.
        """

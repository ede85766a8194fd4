"""Compliance handler for SMS keywords (STOP, START, HELP)."""

from dataclasses import dataclass
from typing import Literal

from leadline.domain.compliance_copy import ComplianceCopy

ComplianceAction = Literal["stop", "start", "help", "allow"]


@dataclass
class ComplianceResult:
    """Result of compliance check."""

    action: ComplianceAction
    keyword: str | None = None
    response_message: str | None = None

    @property
    def is_keyword(self) -> bool:
        return self.action != "allow"


class ComplianceHandler:
    """Classifies an inbound SMS body against the carrier keyword sets.

    Matching is exact on the trimmed, upper-cased body: "stop" and " Stop "
    are opt-outs, "please stop calling" is an ordinary message.
    """

    STOP_KEYWORDS = frozenset({"STOP", "STOPALL", "UNSUBSCRIBE", "CANCEL", "END", "QUIT"})
    START_KEYWORDS = frozenset({"START", "YES", "UNSTOP", "CONFIRM", "SUBSCRIBE"})
    HELP_KEYWORDS = frozenset({"HELP", "INFO"})

    def __init__(self, copy: ComplianceCopy) -> None:
        self.copy = copy

    @staticmethod
    def normalize(message: str | None) -> str:
        return (message or "").strip().upper()

    def check_compliance(self, message: str | None) -> ComplianceResult:
        """Classify a message and attach the fixed reply for keyword classes."""
        keyword = self.normalize(message)

        if keyword in self.STOP_KEYWORDS:
            return ComplianceResult(action="stop", keyword=keyword, response_message=self.copy.opt_out)
        if keyword in self.START_KEYWORDS:
            return ComplianceResult(action="start", keyword=keyword, response_message=self.copy.opt_in)
        if keyword in self.HELP_KEYWORDS:
            return ComplianceResult(action="help", keyword=keyword, response_message=self.copy.help)
        return ComplianceResult(action="allow")

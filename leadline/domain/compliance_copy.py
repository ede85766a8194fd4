"""Carrier-mandated SMS reply copy.

These strings are part of the A2P 10DLC registration and are sent byte for
byte. They are versioned data: a new wording is added as a new version and
selected through ``COMPLIANCE_COPY_VERSION``, never edited in place.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ComplianceCopy:
    version: str
    opt_out: str
    opt_in: str
    help: str


COMPLIANCE_COPY_VERSIONS: dict[str, ComplianceCopy] = {
    "2024-01": ComplianceCopy(
        version="2024-01",
        opt_out=(
            "✓ nevermisslead.com: You've been unsubscribed from all SMS messages. "
            "You won't receive leads or alerts. To resubscribe, text START or visit "
            "nevermisslead.com. We hope to see you back!"
        ),
        opt_in=(
            "✓ nevermisslead.com: Your SMS notifications are active! You'll receive "
            "lead alerts here. Text STOP to opt-out or HELP for support. Welcome aboard!"
        ),
        help=(
            "nevermisslead.com SMS Support: • Text STOP = Unsubscribe from all messages "
            "• Text START = Resubscribe to notifications • Email: support@cherysolutions.com "
            "• Phone: (678) 788-7281"
        ),
    ),
}


def get_compliance_copy(version: str) -> ComplianceCopy:
    """Look up a copy version. An unknown version is a deployment error and raises KeyError."""
    return COMPLIANCE_COPY_VERSIONS[version]

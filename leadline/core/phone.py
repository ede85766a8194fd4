"""Phone number utilities for consistent handling across the application."""

import logging
import re

logger = logging.getLogger(__name__)

# 10-14 digits with an optional leading "+" and country code "1"
LEAD_PHONE_PATTERN = re.compile(r"^\+?1?\d{10,14}$")


def normalize_phone_e164(phone: str | None) -> str | None:
    """Normalize phone number to E.164 format (+1XXXXXXXXXX for US numbers).

    Handles various input formats:
        (281)788-2316 → +12817882316
        281-788-2316  → +12817882316
        +1 281 788 2316 → +12817882316
        1-281-788-2316 → +12817882316

    Returns:
        Phone in E.164 format, the input unchanged if it cannot be
        normalized, or None for empty input
    """
    if not phone:
        return None

    digits = re.sub(r"\D", "", phone)

    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if len(digits) > 10 and phone.strip().startswith("+"):
        return f"+{digits}"

    logger.warning(f"Could not normalize phone number: {phone}")
    return phone


def phone_number_variants(phone: str) -> list[str]:
    """Forms a stored number might take: as given, with and without "+", and E.164.

    Twilio sends "+1..." but numbers entered by hand are often stored
    without the plus sign.
    """
    phone = phone.strip()
    bare = phone.lstrip("+")
    candidates = [phone, bare, f"+{bare}", normalize_phone_e164(phone)]
    variants: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


def is_valid_lead_phone(phone: str) -> bool:
    """Check a submitted lead phone (formatting characters are ignored)."""
    compact = re.sub(r"[\s\-().]", "", phone)
    return bool(LEAD_PHONE_PATTERN.match(compact))

"""
Phone number helpers for verification keys and safe logging.
"""

import re

PHONE_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
PHONE_MASK = "***"


def normalize_country_code(country_code: str) -> str:
    """Calling code with a leading "+", e.g. "1" -> "+1"."""
    code = (country_code or "").strip()
    if code and not code.startswith("+"):
        code = f"+{code}"
    return code


def normalize_national_number(national_number: str) -> str:
    """Strip spaces, dashes, dots and parentheses from a national number."""
    return re.sub(r"[\s\-().]", "", national_number or "")


def normalize_phone_number(country_code: str, national_number: str) -> str:
    """
    Build the verification key for a phone number.

    Args:
        country_code: Calling code, with or without the leading "+" (e.g. "+1")
        national_number: National number, punctuation allowed

    Returns:
        Country code and national number concatenated, e.g. "+15551234567"
    """
    return f"{normalize_country_code(country_code)}{normalize_national_number(national_number)}"


def is_valid_phone_number(phone_number: str) -> bool:
    """Check a phone number against the international format (+ and 2-15 digits)."""
    return bool(phone_number) and PHONE_PATTERN.fullmatch(phone_number) is not None


def mask_phone_number(phone_number: str) -> str:
    """Reveal only the first 3 and last 4 characters of a phone number."""
    if not phone_number or len(phone_number) < 8:
        return PHONE_MASK
    return f"{phone_number[:3]}{PHONE_MASK}{phone_number[-4:]}"

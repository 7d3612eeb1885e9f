"""
Dutch phone number validation and formatting.

Pure helpers: no I/O, never raise.
"""

import re
from dataclasses import dataclass

import phonenumbers

DUTCH_REGION = "NL"
DUTCH_COUNTRY_PREFIX = "+31"
DUTCH_MOBILE_PATTERN = re.compile(r"^(\+31|0031|0)6[0-9]{8}$")
DUTCH_LANDLINE_PATTERN = re.compile(r"^(\+31|0031|0)[1-9][0-9]{7,8}$")
SEPARATOR_PATTERN = re.compile(r"[\s\-()]")


@dataclass(frozen=True)
class PhoneValidation:
    """Outcome of validating a phone number."""

    is_valid: bool
    is_mobile: bool
    is_landline: bool
    formatted: str


def clean_phone_number(phone_number: str | None) -> str:
    """Strip whitespace, dashes and parentheses."""
    if not phone_number:
        return ""
    return SEPARATOR_PATTERN.sub("", phone_number)


def _parse_valid_number(cleaned: str) -> phonenumbers.PhoneNumber | None:
    """Parse a number with the Dutch region, or None if it is not a real number."""
    if not cleaned:
        return None
    try:
        parsed = phonenumbers.parse(cleaned, DUTCH_REGION)
    except phonenumbers.NumberParseException:
        return None
    return parsed if phonenumbers.is_valid_number(parsed) else None


def _rewrite_trunk_prefix(cleaned: str) -> str:
    # 0031 has to be checked before the bare trunk prefix
    if cleaned.startswith("0031"):
        return DUTCH_COUNTRY_PREFIX + cleaned[4:]
    if cleaned.startswith(DUTCH_COUNTRY_PREFIX):
        return cleaned
    if cleaned.startswith("0"):
        return DUTCH_COUNTRY_PREFIX + cleaned[1:]
    return cleaned


def format_dutch_number(phone_number: str | None) -> str:
    """
    Rewrite a Dutch number to the +31 international form.

    Real numbers are formatted as E.164 by phonenumbers. Anything it cannot
    parse only gets its trunk prefix rewritten, and inputs that start with
    neither 0031, +31 nor 0 come back cleaned but otherwise untouched.
    Formatting an already formatted number is a no-op.
    """
    cleaned = clean_phone_number(phone_number)
    parsed = _parse_valid_number(cleaned)
    if parsed is not None:
        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
    return _rewrite_trunk_prefix(cleaned)


def validate_phone_number(phone_number: str | None) -> PhoneValidation:
    """
    Validate a Dutch mobile or landline number.

    The national patterns decide validity. A number is mobile when it fits
    the mobile pattern or the phonenumbers numbering plan says so.

    Args:
        phone_number: Free-form input such as "06 12 34 56 78"

    Returns:
        PhoneValidation: Validity flags plus the formatted number, which is
            filled in even when the number is invalid
    """
    cleaned = clean_phone_number(phone_number)
    matches_mobile = bool(DUTCH_MOBILE_PATTERN.match(cleaned))
    is_valid = matches_mobile or bool(DUTCH_LANDLINE_PATTERN.match(cleaned))

    is_mobile = matches_mobile
    if is_valid and not is_mobile:
        parsed = _parse_valid_number(cleaned)
        is_mobile = parsed is not None and (
            phonenumbers.number_type(parsed) == phonenumbers.PhoneNumberType.MOBILE
        )

    return PhoneValidation(
        is_valid=is_valid,
        is_mobile=is_mobile,
        is_landline=is_valid and not is_mobile,
        formatted=format_dutch_number(cleaned),
    )

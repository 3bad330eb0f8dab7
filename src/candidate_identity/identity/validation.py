"""Normalization and validation of candidate contact details."""

from __future__ import annotations

import re
from dataclasses import dataclass

from candidate_identity.errors import ValidationError

EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")
OTP_CODE_RE = re.compile(r"^[0-9]{6}$")

# Phone digits must carry the country code for known regions.
PHONE_PATTERNS = {
    "IN": re.compile(r"^91[0-9]{10}$"),
    "US": re.compile(r"^1[0-9]{10}$"),
}
DEFAULT_PHONE_RE = re.compile(r"^[0-9]{10,15}$")

# Country calling code prepended to a bare national number.
COUNTRY_CODES = {
    "IN": "91",
    "US": "1",
}
NATIONAL_DIGITS = 10

# Loose minimum for OTP contacts; region rules apply to stored profiles only.
MIN_PHONE_DIGITS = 10

MIN_NAME_LENGTH = 2


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def normalize_phone(phone: str | None) -> str:
    """Strip everything but digits: ``+1 (415) 555-0100`` → ``14155550100``."""
    return re.sub(r"\D", "", str(phone or ""))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def _region_key(region: str | None) -> str:
    return (region or "").strip().upper()


def phone_pattern(region: str | None) -> re.Pattern[str]:
    return PHONE_PATTERNS.get(_region_key(region), DEFAULT_PHONE_RE)


def is_placeholder_phone(digits: str) -> bool:
    """Legacy rows were created with an all-zero phone such as ``+0000000000``."""
    return not digits.strip("0")


def is_valid_phone(digits: str, region: str | None) -> bool:
    return bool(phone_pattern(region).match(digits)) and not is_placeholder_phone(digits)


def is_valid_name(name: str | None) -> bool:
    return len((name or "").strip()) >= MIN_NAME_LENGTH


def require_email(email: str | None) -> str:
    """Return the normalized email or raise ``ValidationError``."""
    normalized = normalize_email(email)
    if not normalized or not is_valid_email(normalized):
        raise ValidationError("email", "Valid email is required")
    return normalized


def require_contact_phone(phone: str | None, region: str | None = None) -> str:
    """Return phone digits suitable as an OTP contact key.

    A 10-digit national number gets the country code of *region*, so
    ``(415) 555-0100`` in region US becomes ``14155550100``.
    """
    digits = normalize_phone(phone)
    if len(digits) < MIN_PHONE_DIGITS:
        raise ValidationError("phone", "Valid phone number is required")
    country = COUNTRY_CODES.get(_region_key(region))
    if country and len(digits) == NATIONAL_DIGITS:
        digits = country + digits
    return digits


def require_profile_phone(phone: str | None, region: str | None) -> str:
    digits = normalize_phone(phone)
    if not is_valid_phone(digits, region):
        raise ValidationError("phone", _phone_message(region))
    return digits


def require_otp_code(code: str | None) -> str:
    entered = (code or "").strip()
    if not OTP_CODE_RE.match(entered):
        raise ValidationError("code", "Valid 6-digit code is required")
    return entered


def _phone_message(region: str | None) -> str:
    region = _region_key(region)
    if region == "IN":
        return "Enter a valid Indian mobile number (91 followed by 10 digits)"
    if region == "US":
        return "Enter a valid US phone number (1 followed by 10 digits)"
    return "Please enter a valid mobile number (10-15 digits)"


@dataclass(frozen=True)
class RegistrationInput:
    """Validated, normalized registration payload."""

    first_name: str
    last_name: str
    email: str
    phone: str


def validate_registration(
    first_name: str | None,
    last_name: str | None,
    email: str | None,
    phone: str | None,
    region: str | None,
) -> RegistrationInput:
    """Validate a raw registration payload.

    Raises ``ValidationError`` on the first invalid field, in form order.
    """
    if not is_valid_name(first_name):
        raise ValidationError("firstName", "First name must be at least 2 characters")
    if not is_valid_name(last_name):
        raise ValidationError("lastName", "Last name must be at least 2 characters")
    return RegistrationInput(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=require_email(email),
        phone=require_profile_phone(phone, region),
    )


def is_profile_complete(candidate, region: str | None) -> bool:
    """A profile is complete when every registration field would validate."""
    if candidate is None:
        return False
    return (
        is_valid_name(candidate.first_name)
        and is_valid_name(candidate.last_name)
        and is_valid_email(normalize_email(candidate.email))
        and is_valid_phone(normalize_phone(candidate.phone), region)
    )

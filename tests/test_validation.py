"""Tests for contact normalization and validation rules."""

import pytest

from candidate_identity.errors import ValidationError
from candidate_identity.identity.validation import (
    is_profile_complete,
    is_valid_email,
    is_valid_phone,
    normalize_email,
    normalize_phone,
    require_contact_phone,
    require_otp_code,
    validate_registration,
)
from candidate_identity.models.candidate import Candidate


def test_normalize_email_trims_and_lowercases():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"
    assert normalize_email(None) == ""


def test_normalize_phone_keeps_digits_only():
    assert normalize_phone("+1 (415) 555-0100") == "14155550100"
    assert normalize_phone(None) == ""


@pytest.mark.parametrize(
    "email, valid",
    [
        ("a@x.com", True),
        ("first.last@sub.example.org", True),
        ("no-at-sign.com", False),
        ("a@nodot", False),
        ("a b@x.com", False),
    ],
)
def test_email_pattern(email, valid):
    assert is_valid_email(email) is valid


@pytest.mark.parametrize(
    "digits, region, valid",
    [
        ("919876543210", "IN", True),
        ("9876543210", "IN", False),
        ("14155550100", "US", True),
        ("4155550100", "US", False),
        ("919876543210", "US", False),
        ("14155550100", "in", False),
        ("4155550100", None, True),
        ("442071234567", "", True),
        ("123456789", "", False),
        ("1234567890123456", "GB", False),
    ],
)
def test_phone_patterns_by_region(digits, region, valid):
    assert is_valid_phone(digits, region) is valid


def test_registration_is_normalized():
    data = validate_registration(" Ada ", "Lovelace", " ADA@X.COM", "+1 415 555 0100", "US")

    assert data.first_name == "Ada"
    assert data.email == "ada@x.com"
    assert data.phone == "14155550100"


@pytest.mark.parametrize(
    "fields, bad_field",
    [
        (("A", "Lovelace", "ada@x.com", "14155550100"), "firstName"),
        (("Ada", " L ", "ada@x.com", "14155550100"), "lastName"),
        (("Ada", "Lovelace", "not-an-email", "14155550100"), "email"),
        (("Ada", "Lovelace", "ada@x.com", "4155550100"), "phone"),
    ],
)
def test_registration_rejects_first_bad_field(fields, bad_field):
    with pytest.raises(ValidationError) as exc_info:
        validate_registration(*fields, "US")
    assert exc_info.value.field == bad_field


def test_contact_phone_needs_ten_digits():
    assert require_contact_phone("+91 98765 43210") == "919876543210"
    with pytest.raises(ValidationError):
        require_contact_phone("555-0100")


@pytest.mark.parametrize("code", ["12345", "1234567", "12a456", "", None])
def test_otp_code_must_be_six_digits(code):
    with pytest.raises(ValidationError):
        require_otp_code(code)


def test_otp_code_keeps_leading_zeros():
    assert require_otp_code(" 000123 ") == "000123"


def test_profile_completeness():
    complete = Candidate(first_name="Ada", last_name="Lovelace", email="ada@x.com", phone="14155550100")
    placeholder = Candidate(first_name="User", last_name="Candidate", email="ada@x.com", phone="+0000")

    assert is_profile_complete(complete, "US")
    assert not is_profile_complete(placeholder, "US")
    assert not is_profile_complete(None, "US")


def test_all_zero_placeholder_phone_is_incomplete():
    placeholder = Candidate(first_name="Ada", last_name="Lovelace", email="ada@x.com", phone="+0000000000")

    assert not is_valid_phone("0000000000", None)
    assert not is_profile_complete(placeholder, None)


@pytest.mark.parametrize(
    ("raw", "region", "expected"),
    [
        ("(415) 555-0100", "US", "14155550100"),
        ("98765 43210", "IN", "919876543210"),
        ("+1 415 555 0100", "US", "14155550100"),
        ("4155550100", None, "4155550100"),
    ],
)
def test_contact_phone_completes_national_numbers(raw, region, expected):
    assert require_contact_phone(raw, region) == expected

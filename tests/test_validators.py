"""
tests.test_validators

Local input checks, phone normalization and PIN hashing.
"""

from __future__ import annotations

import pytest

from imani_session.auth.pins import check_pin, check_secret, hash_pin, hash_secret
from imani_session.auth.validators import (
    normalize_phone,
    validate_company_code,
    validate_email,
    validate_password,
    validate_phone,
)
from imani_session.domain.errors import ValidationError


@pytest.mark.parametrize(
    ("raw", "dial_code", "expected"),
    [
        ("0712 345 678", "+255", "+255712345678"),
        ("(071) 234-5678", "+255", "+255712345678"),
        ("+254712345678", "+255", "+254712345678"),
        ("+255712345678", "+255", "+255712345678"),
        ("00255712345678", "+255", "+255712345678"),
        ("00 254 712 345 678", "+255", "+254712345678"),
        ("712345678", None, "712345678"),
    ],
)
def test_normalize_phone(raw: str, dial_code: str | None, expected: str) -> None:
    assert normalize_phone(raw, dial_code) == expected


@pytest.mark.parametrize("code", ["acme co", "acme@co", "", "acme.co"])
def test_company_code_rejects_invalid_characters(code: str) -> None:
    with pytest.raises(ValidationError):
        validate_company_code(code)


def test_company_code_accepts_letters_digits_hyphen_underscore() -> None:
    assert validate_company_code("Acme_co-42") == "Acme_co-42"


def test_password_minimum_length() -> None:
    with pytest.raises(ValidationError):
        validate_password("12345")
    assert validate_password("123456") == "123456"


def test_email_is_stripped_and_checked() -> None:
    assert validate_email("  admin@acme.test ") == "admin@acme.test"
    with pytest.raises(ValidationError):
        validate_email("not-an-email")


def test_validate_phone() -> None:
    assert validate_phone("+255712345678") == "+255712345678"
    with pytest.raises(ValidationError):
        validate_phone("+25abc")


def test_pin_hash_matches_only_the_exact_pin() -> None:
    hashed = hash_pin("1234", rounds=4)
    assert hashed != "1234"
    assert check_pin("1234", hashed)
    for candidate in ("123", "12345", "1235", "", "abcd"):
        assert not check_pin(candidate, hashed)


def test_hash_pin_rejects_malformed_pins() -> None:
    with pytest.raises(ValueError):
        hash_pin("12a4", rounds=4)


def test_plaintext_stored_value_is_refused() -> None:
    # Rows written before hashing carried the raw PIN; they must never verify.
    assert not check_pin("1234", "1234")
    assert not check_secret("pw", None)
    assert check_secret("pw-123", hash_secret("pw-123", rounds=4))

"""
imani_session.auth.validators

Local (pre-network) input checks and phone number normalization.
"""

from __future__ import annotations

import re

from imani_session.domain.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
COMPANY_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{7,15}$")
MIN_PASSWORD_LENGTH = 6

_PHONE_NOISE = re.compile(r"[\s\-()]")


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("Please enter a valid email address")
    return email


def validate_company_code(code: str) -> str:
    if not COMPANY_CODE_PATTERN.fullmatch(code or ""):
        raise ValidationError(
            "Company code should only contain letters, numbers, hyphens or underscores."
        )
    return code


def validate_password(password: str) -> str:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Admin password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )
    return password


def normalize_phone(phone_number: str, dial_code: str | None) -> str:
    """
    Attach the caller's dial code to a local number.

    A leading `00` is the international prefix and becomes `+`; other leading zeros
    are dropped. Numbers that are already internationally formatted
    (leading `+`, or already starting with the dial code) pass through unchanged.
    """

    cleaned = _PHONE_NOISE.sub("", phone_number or "")
    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    cleaned = cleaned.lstrip("0")
    if not dial_code:
        return cleaned
    if cleaned.startswith(dial_code) or cleaned.startswith("+"):
        return cleaned
    return f"{dial_code}{cleaned}"


def validate_phone(phone_number: str) -> str:
    if not PHONE_PATTERN.fullmatch(_PHONE_NOISE.sub("", phone_number or "")):
        raise ValidationError("Please enter a valid phone number")
    return phone_number

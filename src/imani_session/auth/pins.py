"""
imani_session.auth.pins

PIN credential hashing.

PINs are stored as salted bcrypt hashes and compared with `bcrypt.checkpw`;
the plaintext PIN is never persisted.
"""

from __future__ import annotations

import re

import bcrypt

PIN_PATTERN = re.compile(r"^[0-9]{4}$")


def is_well_formed_pin(pin: str) -> bool:
    return bool(PIN_PATTERN.fullmatch(pin or ""))


def hash_secret(secret: str, *, rounds: int = 12) -> str:
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_secret(secret: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash (legacy plaintext row); refuse it.
        return False


def hash_pin(pin: str, *, rounds: int = 12) -> str:
    if not is_well_formed_pin(pin):
        raise ValueError("PIN must be exactly 4 digits")
    return hash_secret(pin, rounds=rounds)


def check_pin(pin: str, pin_hash: str | None) -> bool:
    # Exact match only: anything that is not four digits never reaches bcrypt.
    return is_well_formed_pin(pin) and check_secret(pin, pin_hash)

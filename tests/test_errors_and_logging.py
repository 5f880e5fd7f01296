"""
tests.test_errors_and_logging

Environmental-failure classification and credential redaction in logs.
"""

from __future__ import annotations

import httpx
import pytest

from imani_session.domain.errors import (
    BackendError,
    InvalidPin,
    NetworkError,
    is_duplicate_key,
    is_environmental,
)
from imani_session.observability.logging import redact_credentials


@pytest.mark.parametrize(
    "exc",
    [
        BackendError("TypeError: Failed to fetch"),
        BackendError('new row violates row-level security policy for table "profiles"'),
        BackendError("permission denied by policy"),
        BackendError("Network request failed"),
        httpx.ReadTimeout("timed out"),
        NetworkError(),
    ],
)
def test_environmental(exc: Exception) -> None:
    assert is_environmental(exc)


@pytest.mark.parametrize(
    "exc",
    [
        BackendError("Invalid login credentials"),
        BackendError('duplicate key value violates unique constraint "companies_code_key"'),
        BackendError("conflict", code="23505"),
        InvalidPin(),
    ],
)
def test_not_environmental(exc: Exception) -> None:
    assert not is_environmental(exc)


def test_duplicate_key_detection() -> None:
    assert is_duplicate_key(BackendError("whatever", code="23505"))
    assert not is_duplicate_key(BackendError("whatever", code="42501"))


def test_redact_credentials() -> None:
    event = {"event": "sign_in", "password": "hunter22", "pin": "1234", "email": "a@b.c"}

    out = redact_credentials(None, "info", event)

    assert out["password"] == "***"
    assert out["pin"] == "***"
    assert out["email"] == "a@b.c"

"""
imani_session.domain.errors

Error taxonomy for authentication and session operations.

Responsibilities:
- Define one exception type per failure kind surfaced to callers.
- Classify backend failures as environmental (triggers demo fallback) or not.
"""

from __future__ import annotations

import enum

import httpx

_ENVIRONMENTAL_MARKERS = (
    "failed to fetch",
    "network",
    "policy",
    "violates",
    "row-level security",
)


class ErrorKind(enum.StrEnum):
    invalid_credentials = "InvalidCredentials"
    profile_not_found = "ProfileNotFound"
    pin_not_set = "PinNotSet"
    invalid_pin = "InvalidPin"
    not_authenticated = "NotAuthenticated"
    duplicate_company_code = "DuplicateCompanyCode"
    email_already_registered = "EmailAlreadyRegistered"
    registration_failed = "RegistrationFailed"
    network_error = "NetworkError"
    validation_error = "ValidationError"


class SessionError(Exception):
    """
    Base class for failures surfaced by the session layer.
    `kind` is what gets recorded into `SessionState.last_error`.
    """

    kind: ErrorKind
    default_message = "Session operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(SessionError):
    kind = ErrorKind.invalid_credentials
    default_message = "Invalid login credentials"


class ProfileNotFound(SessionError):
    kind = ErrorKind.profile_not_found
    default_message = "Profile not found"


class PinNotSet(SessionError):
    kind = ErrorKind.pin_not_set
    default_message = "PIN not set. Please complete registration via WhatsApp."


class InvalidPin(SessionError):
    kind = ErrorKind.invalid_pin
    default_message = "Invalid PIN"


class NotAuthenticated(SessionError):
    kind = ErrorKind.not_authenticated
    default_message = "Not authenticated"


class DuplicateCompanyCode(SessionError):
    kind = ErrorKind.duplicate_company_code
    default_message = "This company code is already in use"


class EmailAlreadyRegistered(SessionError):
    kind = ErrorKind.email_already_registered
    default_message = "This email is already registered"


class RegistrationFailed(SessionError):
    kind = ErrorKind.registration_failed
    default_message = "Registration failed"


class NetworkError(SessionError):
    kind = ErrorKind.network_error
    default_message = "Backend unreachable"


class ValidationError(SessionError):
    kind = ErrorKind.validation_error
    default_message = "Invalid input"


class PermissionDenied(Exception):
    """Authenticated actor lacks the role required for an operation."""


class BackendError(Exception):
    """
    Non-success response from the hosted backend (auth, rest or rpc).
    `code` carries the Postgres/PostgREST error code when one is present.
    """

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None) -> None:
        self.message = message
        self.code = code
        self.status = status
        super().__init__(message)


def is_environmental(exc: BaseException) -> bool:
    """
    True when the failure says the backend itself is unusable (unreachable, or
    rejecting us at the policy layer) rather than rejecting the request's content.
    """

    if isinstance(exc, (httpx.TransportError, NetworkError)):
        return True
    if is_duplicate_key(exc):
        # "duplicate key value violates unique constraint" is a content error.
        return False
    message = str(exc).lower()
    return any(marker in message for marker in _ENVIRONMENTAL_MARKERS)


def is_duplicate_key(exc: BaseException) -> bool:
    if isinstance(exc, BackendError) and exc.code == "23505":
        return True
    return "duplicate key" in str(exc).lower()


def is_email_taken(exc: BaseException) -> bool:
    return "user already registered" in str(exc).lower()


# --- Module Notes -----------------------------------------------------------
# Marker matching is message based because the hosted backend reports policy
# violations and fetch failures only through free-text messages.

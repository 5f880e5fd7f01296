"""
imani_session.services.registration

Company Registration Workflow.

Responsibilities:
- Validate registration input locally (no network on bad input).
- Create tenant + admin in one security-definer RPC (atomic server-side).
- Sign the new admin in and resolve the Actor.
- Classify failures (duplicate company code, email taken, generic).
"""

from __future__ import annotations

from dataclasses import dataclass

from imani_session.auth.credentials import CredentialVerifier
from imani_session.auth.validators import (
    normalize_phone,
    validate_company_code,
    validate_email,
    validate_password,
)
from imani_session.backends.base import Backend
from imani_session.domain.errors import (
    DuplicateCompanyCode,
    EmailAlreadyRegistered,
    RegistrationFailed,
    SessionError,
    ValidationError,
    is_duplicate_key,
    is_email_taken,
    is_environmental,
)
from imani_session.domain.models import Actor
from imani_session.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CompanyRegistration:
    company_name: str
    company_code: str
    admin_email: str
    admin_password: str
    admin_full_name: str
    admin_phone_number: str = ""
    dial_code: str | None = None

    def validated(self) -> CompanyRegistration:
        """Return a cleaned copy or raise `ValidationError`; never touches the network."""

        validate_company_code(self.company_code)
        validate_password(self.admin_password)
        email = validate_email(self.admin_email)
        if not self.company_name.strip():
            raise ValidationError("Company name is required")
        if not self.admin_full_name.strip():
            raise ValidationError("Admin full name is required")
        phone = (
            normalize_phone(self.admin_phone_number, self.dial_code)
            if self.admin_phone_number
            else ""
        )
        return CompanyRegistration(
            company_name=self.company_name.strip(),
            company_code=self.company_code,
            admin_email=email,
            admin_password=self.admin_password,
            admin_full_name=self.admin_full_name.strip(),
            admin_phone_number=phone,
        )


def classify_registration_error(exc: Exception) -> Exception:
    if isinstance(exc, SessionError) or is_environmental(exc):
        return exc
    if is_duplicate_key(exc):
        return DuplicateCompanyCode()
    if is_email_taken(exc):
        return EmailAlreadyRegistered()
    return RegistrationFailed(str(exc) or None)


class RegistrationWorkflow:
    def __init__(self, *, verifier: CredentialVerifier) -> None:
        self._verifier = verifier

    async def register(self, backend: Backend, registration: CompanyRegistration) -> Actor:
        try:
            # One remote call: tenant and admin rows are created in a single transaction.
            result = await backend.register_company_and_admin(
                company_name=registration.company_name,
                company_code=registration.company_code,
                full_name=registration.admin_full_name,
                email=registration.admin_email,
                phone_number=registration.admin_phone_number,
                password=registration.admin_password,
            )
        except Exception as e:
            classified = classify_registration_error(e)
            if classified is e:
                raise
            raise classified from e
        log.info("register_company.created", company_code=registration.company_code, result=result)

        # The procedure does not hand back a session; sign in with the new credentials.
        try:
            actor = await self._verifier.verify_password(
                backend, email=registration.admin_email, password=registration.admin_password
            )
        except SessionError as e:
            if is_environmental(e):
                raise
            raise RegistrationFailed(f"Company created but sign-in failed: {e.message}") from e
        return actor

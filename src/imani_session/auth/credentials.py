"""
imani_session.auth.credentials

Credential Verifier.

Responsibilities:
- Verify email+password through the auth provider.
- Verify phone+PIN against the stored PIN credential, then establish a session by
  piggybacking on password sign-in with a synthesized login identifier.
- Translate provider failures into the session error taxonomy.

Environmental failures (network, policy) surface as `NetworkError`; the session store
turns those into a demo-mode switch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager

from imani_session.auth.pins import check_pin
from imani_session.auth.profiles import ProfileResolver
from imani_session.auth.validators import normalize_phone, validate_email
from imani_session.backends.base import Backend
from imani_session.domain.errors import (
    BackendError,
    InvalidCredentials,
    InvalidPin,
    NetworkError,
    PinNotSet,
    ProfileNotFound,
    SessionError,
    is_environmental,
)
from imani_session.domain.models import Actor
from imani_session.observability.logging import get_logger
from imani_session.settings import Settings

log = get_logger(__name__)


@contextmanager
def _environmental_as_network_error() -> Iterator[None]:
    try:
        yield
    except SessionError:
        raise
    except Exception as e:
        if not is_environmental(e):
            raise
        raise NetworkError(str(e) or None) from e


class CredentialVerifier:
    def __init__(self, *, settings: Settings, profiles: ProfileResolver) -> None:
        self._settings = settings
        self._profiles = profiles

    def pin_login_identifier(self, phone_number: str) -> str:
        return f"{phone_number}@temp.{self._settings.pin_login_domain}"

    async def verify_password(self, backend: Backend, *, email: str, password: str) -> Actor:
        email = validate_email(email)
        with _environmental_as_network_error():
            await self._sign_in(backend, email=email, password=password)
            actor = await self._profiles.resolve_current_actor(backend)
        if actor is None:
            raise ProfileNotFound()
        log.info("verify_password.ok", actor_id=actor.id, backend=backend.name)
        return actor

    async def verify_pin(
        self,
        backend: Backend,
        *,
        phone_number: str,
        pin: str,
        dial_code: str | None = None,
    ) -> Actor:
        phone = normalize_phone(phone_number, dial_code)

        with _environmental_as_network_error():
            row = await backend.fetch_profile_by_phone(phone)
        if row is None:
            raise ProfileNotFound()
        candidate = self._profiles.actor_from_row(row)

        # "Not set yet" must win over "wrong PIN": the actor has to finish onboarding.
        if candidate.pin is None or not candidate.pin.is_usable:
            raise PinNotSet()
        # bcrypt is CPU bound; keep it off the event loop.
        if not await asyncio.to_thread(check_pin, pin, candidate.pin.pin_hash):
            log.info("verify_pin.mismatch", actor_id=candidate.id)
            raise InvalidPin()

        with _environmental_as_network_error():
            await self._sign_in(backend, email=self.pin_login_identifier(phone), password=pin)
            actor = await self._profiles.resolve_current_actor(backend)
        if actor is None or actor.id != candidate.id:
            raise InvalidCredentials("PIN session could not be established")
        log.info("verify_pin.ok", actor_id=actor.id, backend=backend.name)
        return actor

    async def _sign_in(self, backend: Backend, *, email: str, password: str) -> None:
        try:
            await backend.sign_in_with_password(email=email, password=password)
        except BackendError as e:
            if is_environmental(e):
                raise
            raise InvalidCredentials(e.message) from e

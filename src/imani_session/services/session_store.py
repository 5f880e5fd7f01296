"""
imani_session.services.session_store

Session Store: the authoritative holder of session state.

Responsibilities:
- Hold the current actor, loading/error flags and the demo-mode flag.
- Expose the operations used to authenticate, deauthenticate and mutate the profile.
- Guarantee `is_loading` is cleared on every exit path and that at most one mutating
  operation is in flight at a time.
- Convert environmental backend failures into a demo-mode switch.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from imani_session.auth.credentials import CredentialVerifier
from imani_session.auth.pins import hash_pin, is_well_formed_pin
from imani_session.auth.profiles import ProfileResolver
from imani_session.auth.validators import normalize_phone, validate_email
from imani_session.backends.base import Backend
from imani_session.backends.demo import DemoBackend
from imani_session.domain.errors import (
    NotAuthenticated,
    ProfileNotFound,
    SessionError,
    ValidationError,
    is_environmental,
)
from imani_session.domain.models import Actor, PhoneStatus
from imani_session.domain.state import SessionState
from imani_session.observability.logging import get_logger
from imani_session.services.fallback import FallbackController
from imani_session.services.flags import FlagStore
from imani_session.services.registration import CompanyRegistration, RegistrationWorkflow
from imani_session.settings import Settings

log = get_logger(__name__)

T = TypeVar("T")

StateListener = Callable[[SessionState], None]

# Columns the actor may not rewrite through `update_profile`.
_READ_ONLY_PROFILE_FIELDS = frozenset({"id", "company_id", "role", "created_at", "updated_at"})


async def _no_result() -> None:
    return None


class SessionStore:
    def __init__(
        self,
        *,
        settings: Settings,
        fallback: FallbackController,
        flags: FlagStore,
        profiles: ProfileResolver | None = None,
        verifier: CredentialVerifier | None = None,
        flag_key: str | None = None,
    ) -> None:
        self._settings = settings
        self._flag_key = flag_key or settings.demo_flag_key
        self._fallback = fallback
        self._flags = flags
        self._profiles = profiles or ProfileResolver()
        self._verifier = verifier or CredentialVerifier(settings=settings, profiles=self._profiles)
        self._registration = RegistrationWorkflow(verifier=self._verifier)

        self._state = SessionState()
        self._listeners: list[StateListener] = []
        # One mutating operation at a time; later callers queue behind the lock.
        self._lock = asyncio.Lock()
        self._detach_fallback = fallback.add_listener(self._on_demo_activated)

    # -- state --------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def fallback(self) -> FallbackController:
        return self._fallback

    @property
    def settings(self) -> Settings:
        return self._settings

    def dial_code(self, dial_code: str | None) -> str:
        return dial_code or self._settings.default_dial_code

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _set(self, state: SessionState) -> None:
        # Whole-snapshot replacement; observers never see a half-updated state.
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _on_demo_activated(self, demo: DemoBackend, reason: str) -> None:
        self._adopt_demo_actor(demo, reason=reason)

    def _adopt_demo_actor(self, demo: DemoBackend, *, reason: str) -> None:
        actor = self._profiles.actor_from_row(demo.seeded_actor_row())
        self._set(
            self._state.evolve(
                actor=actor, demo_mode=True, last_error=None, last_error_message=None
            )
        )
        log.info("session.demo_actor", actor_id=actor.id, reason=reason)

    # -- operation runner ---------------------------------------------------

    async def _run(
        self,
        operation: str,
        fn: Callable[[Backend], Awaitable[T]],
        *,
        on_demo: Callable[[], Awaitable[T]],
        reraise: bool = True,
    ) -> T | None:
        async with self._lock:
            self._set(self._state.evolve(is_loading=True, last_error=None, last_error_message=None))
            backend = self._fallback.backend
            try:
                result = await fn(backend)
                demo = self._fallback.demo
                if demo is not None and demo is not backend:
                    # Demo was entered while `fn` was suspended; its hosted result is stale.
                    log.info("session.backend_switched", operation=operation)
                    self._adopt_demo_actor(demo, reason=f"{operation}: switched")
                    return await on_demo()
                return result
            except Exception as e:
                if backend is not self._fallback.demo and is_environmental(e):
                    log.warning("session.environmental_failure", operation=operation, error=str(e))
                    self._fallback.activate_demo(reason=f"{operation}: {e}")
                    return await on_demo()
                kind = e.kind if isinstance(e, SessionError) else None
                self._set(self._state.evolve(last_error=kind, last_error_message=str(e)))
                log.info(f"{operation}.failed", error=kind.value if kind else type(e).__name__)
                if reraise:
                    raise
                return None
            finally:
                self._set(self._state.evolve(is_loading=False))

    async def _demo_actor(self) -> Actor | None:
        return self._state.actor

    # -- operations ---------------------------------------------------------

    async def initialize(self) -> SessionState:
        """
        Establish the starting session: the durable demo flag wins (no backend call),
        otherwise ask the auth provider who is signed in. Never raises; failures are
        recorded in `last_error`.
        """

        async def _init(backend: Backend) -> Actor | None:
            if await self._flags.get_bool(self._flag_key):
                self._fallback.activate_demo(reason="durable flag")
                return self._state.actor
            actor = await self._profiles.resolve_current_actor(backend)
            self._set(self._state.evolve(actor=actor, demo_mode=self._fallback.demo_active))
            return actor

        await self._run("initialize", _init, on_demo=self._demo_actor, reraise=False)
        return self._state

    async def sign_in(self, email: str, password: str) -> Actor:
        email = validate_email(email)

        async def _sign_in(backend: Backend) -> Actor:
            actor = await self._verifier.verify_password(backend, email=email, password=password)
            self._set(self._state.evolve(actor=actor, demo_mode=self._fallback.demo_active))
            return actor

        return await self._run("sign_in", _sign_in, on_demo=self._demo_actor)

    async def sign_in_with_pin(
        self, phone_number: str, pin: str, *, dial_code: str | None = None
    ) -> Actor:
        async def _sign_in(backend: Backend) -> Actor:
            actor = await self._verifier.verify_pin(
                backend, phone_number=phone_number, pin=pin, dial_code=self.dial_code(dial_code)
            )
            self._set(self._state.evolve(actor=actor, demo_mode=self._fallback.demo_active))
            return actor

        return await self._run("sign_in_with_pin", _sign_in, on_demo=self._demo_actor)

    async def setup_pin(self, phone_number: str, pin: str, *, dial_code: str | None = None) -> None:
        if not is_well_formed_pin(pin):
            raise ValidationError("Please enter a valid 4-digit PIN")
        phone = normalize_phone(phone_number, self.dial_code(dial_code))

        async def _setup(backend: Backend) -> None:
            row = await backend.fetch_profile_by_phone(phone)
            if row is None:
                raise ProfileNotFound()
            pin_hash = await asyncio.to_thread(hash_pin, pin, rounds=self._settings.pin_hash_rounds)
            await backend.upsert_pin(profile_id=row["id"], pin_hash=pin_hash)
            log.info("setup_pin.ok", profile_id=row["id"])

        await self._run("setup_pin", _setup, on_demo=_no_result)

    async def check_phone_number(
        self, phone_number: str, *, dial_code: str | None = None
    ) -> PhoneStatus:
        async def _check(backend: Backend) -> PhoneStatus:
            return await self._profiles.check_phone_number(
                backend, phone_number=phone_number, dial_code=self.dial_code(dial_code)
            )

        async def _check_demo() -> PhoneStatus:
            # Read-only: an outage answers from the demo dataset instead.
            return await _check(self._fallback.backend)

        return await self._run("check_phone_number", _check, on_demo=_check_demo)

    async def update_profile(self, fields: dict[str, Any]) -> Actor:
        changes = {k: v for k, v in fields.items() if k not in _READ_ONLY_PROFILE_FIELDS}
        if not changes:
            raise ValidationError("No profile fields to update")

        async def _update(backend: Backend) -> Actor:
            current = self._state.actor
            if current is None:
                raise NotAuthenticated()
            await backend.update_profile(current.id, changes)
            # Always reload the whole actor so server-computed fields stay consistent.
            actor = await self._profiles.resolve_current_actor(backend)
            if actor is None:
                raise NotAuthenticated()
            self._set(self._state.evolve(actor=actor))
            return actor

        return await self._run("update_profile", _update, on_demo=self._demo_actor)

    async def sign_out(self) -> SessionState:
        async with self._lock:
            self._set(self._state.evolve(is_loading=True, last_error=None, last_error_message=None))
            try:
                if not (self._state.demo_mode or self._fallback.demo_active):
                    try:
                        await self._fallback.real.sign_out()
                    except Exception as e:
                        if not is_environmental(e):
                            raise
                        # Signing out while offline still ends the local session.
                        log.warning("sign_out.offline", error=str(e))
                # Checked after the await: demo mode may have been entered meanwhile.
                if self._state.demo_mode or self._fallback.demo_active:
                    # Demo sessions never touched the backend; forget the flag and the data.
                    await self._flags.clear(self._flag_key)
                    self._fallback.deactivate_demo()
                self._set(SessionState(is_loading=True))
            except Exception as e:
                kind = e.kind if isinstance(e, SessionError) else None
                self._set(self._state.evolve(last_error=kind, last_error_message=str(e)))
                raise
            finally:
                self._set(self._state.evolve(is_loading=False))
        log.info("sign_out.ok")
        return self._state

    async def enter_demo_mode(self) -> SessionState:
        """Explicit "try demo": persist the durable flag and switch to the demo backend."""

        async with self._lock:
            await self._flags.set_bool(self._flag_key, True)
            self._fallback.activate_demo(reason="requested")
            self._set(self._state.evolve(is_loading=False))
        return self._state

    async def register_company(self, registration: CompanyRegistration) -> Actor:
        # Local validation happens before any suspension point or state change.
        registration = dataclasses.replace(
            registration, dial_code=self.dial_code(registration.dial_code)
        ).validated()

        async def _register(backend: Backend) -> Actor:
            actor = await self._registration.register(backend, registration)
            self._set(self._state.evolve(actor=actor, demo_mode=self._fallback.demo_active))
            log.info("register_company.ok", actor_id=actor.id, company_id=actor.company_id)
            return actor

        return await self._run("register_company", _register, on_demo=self._demo_actor)

    async def aclose(self) -> None:
        self._detach_fallback()
        self._listeners.clear()


# --- Module Notes -----------------------------------------------------------
# The lock replaces any timer-based "force loading off later" patch: `is_loading`
# is only ever written while the lock is held, and always reset in `finally`.

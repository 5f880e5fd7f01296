"""
tests.conftest

Shared fixtures.

Responsibilities:
- Provide test settings (cheap bcrypt rounds, per-test SQLite flag DB).
- Provide an in-process fake of the hosted backend served through `httpx.MockTransport`.
- Assemble session stacks (flag store, fallback controller, session store) on top of it.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncIterator, Callable
from typing import Any

import bcrypt
import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from imani_session.backends.supabase import SupabaseBackend
from imani_session.db.session import create_engine, create_schema, create_sessionmaker
from imani_session.services.fallback import FallbackController
from imani_session.services.flags import FlagStore
from imani_session.services.session_store import SessionStore
from imani_session.settings import Settings

ADMIN_EMAIL = "admin@acme.test"
ADMIN_PASSWORD = "secret-pass"
EMPLOYEE_PHONE = "+255700000002"
EMPLOYEE_PIN = "1234"
NO_PIN_ROW_PHONE = "+255700000003"
PENDING_PIN_PHONE = "+255700000004"
GHOST_EMAIL = "ghost@acme.test"


def _hash(secret: str) -> str:
    return bcrypt.hashpw(secret.encode(), bcrypt.gensalt(rounds=4)).decode()


class FakeSupabase:
    """
    Minimal stand-in for the hosted backend: auth token/user/logout, PostgREST-style
    row access for the tables the service touches, and the registration RPC.

    `fail(path, ...)` makes every request to `path` fail, either with an error body
    or with a transport exception.
    """

    def __init__(self) -> None:
        now = "2024-01-01T00:00:00+00:00"
        self.companies: dict[str, dict[str, Any]] = {
            "co-1": {"id": "co-1", "name": "Acme Ltd", "code": "acme", "created_at": now}
        }
        self.profiles: dict[str, dict[str, Any]] = {}
        self.pins: dict[str, dict[str, Any]] = {}
        self.users: dict[str, dict[str, str]] = {}
        self.tokens: dict[str, str] = {}
        self.communications: list[dict[str, Any]] = []
        self.departments: list[dict[str, Any]] = [
            {"id": "d-1", "name": "Finance", "company_id": "co-1", "created_at": now}
        ]
        self.requests: list[httpx.Request] = []
        self._failures: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

        self.add_profile("u-admin", role="hr_admin", email=ADMIN_EMAIL, phone="+255700000001")
        self.users[ADMIN_EMAIL] = {"id": "u-admin", "password": ADMIN_PASSWORD}
        self.add_profile("u-emp", role="employee", phone=EMPLOYEE_PHONE)
        self.pins["u-emp"] = {
            "id": "pin-emp",
            "profile_id": "u-emp",
            "pin_hash": _hash(EMPLOYEE_PIN),
            "pin_set": True,
        }
        self.add_profile("u-nopin", role="employee", phone=NO_PIN_ROW_PHONE)
        self.add_profile("u-pending", role="employee", phone=PENDING_PIN_PHONE)
        self.pins["u-pending"] = {
            "id": "pin-pending",
            "profile_id": "u-pending",
            "pin_hash": None,
            "pin_set": False,
        }
        # Auth account whose profile row was never created.
        self.users[GHOST_EMAIL] = {"id": "u-ghost", "password": ADMIN_PASSWORD}

    def add_profile(
        self, profile_id: str, *, role: str, email: str | None = None, phone: str | None = None
    ) -> None:
        self.profiles[profile_id] = {
            "id": profile_id,
            "company_id": "co-1",
            "role": role,
            "full_name": profile_id.upper(),
            "email": email,
            "phone_number": phone,
            "communication_channels": ["email"],
            "department": None,
            "created_at": "2024-01-01T00:00:00+00:00",
            "updated_at": "2024-01-01T00:00:00+00:00",
        }

    def fail(
        self,
        path: str,
        *,
        status: int = 403,
        body: dict[str, Any] | None = None,
        exc: type[httpx.TransportError] | None = None,
    ) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            if exc is not None:
                raise exc("simulated transport failure", request=request)
            return httpx.Response(status, json=body or {})

        self._failures[path] = _respond

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    # -- transport ----------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self._failures:
            return self._failures[path](request)

        if path == "/auth/v1/token":
            return self._token(request)
        if path == "/auth/v1/user":
            user_id = self._bearer_user(request)
            if user_id is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            email = next((e for e, u in self.users.items() if u["id"] == user_id), None)
            return httpx.Response(200, json={"id": user_id, "email": email})
        if path == "/auth/v1/logout":
            self.tokens.pop(self._token_of(request) or "", None)
            return httpx.Response(204)
        if path == "/rest/v1/rpc/register_company_and_admin":
            return self._register(json.loads(request.content))
        if path.startswith("/rest/v1/"):
            return self._rest(request, path.removeprefix("/rest/v1/"))
        return httpx.Response(404, json={"message": f"no route {path}"})

    def _token(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        email, password = body["email"], body["password"]
        user_id: str | None = None
        if "@temp." in email:
            # PIN logins: the backend provisions these accounts from the PIN table.
            phone = email.split("@", 1)[0]
            profile = next(
                (p for p in self.profiles.values() if p["phone_number"] == phone), None
            )
            pin = self.pins.get(profile["id"]) if profile else None
            hashed = (pin or {}).get("pin_hash")
            if hashed and bcrypt.checkpw(password.encode(), hashed.encode()):
                user_id = profile["id"]
        else:
            user = self.users.get(email)
            if user and user["password"] == password:
                user_id = user["id"]
        if user_id is None:
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
            )
        token = f"tok-{uuid.uuid4().hex}"
        self.tokens[token] = user_id
        return httpx.Response(
            200,
            json={
                "access_token": token,
                "refresh_token": "refresh",
                "token_type": "bearer",
                "user": {"id": user_id, "email": email},
            },
        )

    def _register(self, body: dict[str, Any]) -> httpx.Response:
        if any(c["code"] == body["company_code"] for c in self.companies.values()):
            return httpx.Response(
                409,
                json={
                    "code": "23505",
                    "message": "duplicate key value violates unique constraint"
                    ' "companies_code_key"',
                },
            )
        if body["email"] in self.users:
            return httpx.Response(
                400, json={"code": "P0001", "message": "User already registered"}
            )
        company_id = f"co-{uuid.uuid4().hex[:8]}"
        user_id = f"u-{uuid.uuid4().hex[:8]}"
        self.companies[company_id] = {
            "id": company_id,
            "name": body["company_name"],
            "code": body["company_code"],
        }
        self.add_profile(user_id, role="hr_admin", email=body["email"], phone=body["phone_number"])
        self.profiles[user_id].update(company_id=company_id, full_name=body["full_name"])
        self.users[body["email"]] = {"id": user_id, "password": body["password"]}
        return httpx.Response(200, json={"company_id": company_id, "user_id": user_id})

    def _rest(self, request: httpx.Request, table: str) -> httpx.Response:
        params = request.url.params
        wants_object = request.headers.get("accept") == "application/vnd.pgrst.object+json"
        if request.method == "GET":
            rows = self._rows(table, params)
            if wants_object:
                if len(rows) != 1:
                    return httpx.Response(
                        406, json={"code": "PGRST116", "message": "JSON object requested"}
                    )
                return httpx.Response(200, json=rows[0])
            return httpx.Response(200, json=rows)

        body = json.loads(request.content)
        if request.method == "POST":
            return httpx.Response(201, json=[self._insert(table, body)])
        if request.method == "PATCH":
            key = params["id"].removeprefix("eq.")
            target = self._table(table).get(key) if table != "communications" else next(
                (c for c in self.communications if c["id"] == key), None
            )
            if target is None:
                return httpx.Response(200, json=[])
            target.update(body)
            return httpx.Response(200, json=[self._join(target) if table == "profiles" else target])
        return httpx.Response(405)

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        return {"profiles": self.profiles, "employee_pins": self.pins}[table]

    def _rows(self, table: str, params: httpx.QueryParams) -> list[dict[str, Any]]:
        if table == "communications":
            return sorted(self.communications, key=lambda c: c["created_at"], reverse=True)
        if table == "departments":
            company = params["company_id"].removeprefix("eq.")
            return [d for d in self.departments if d["company_id"] == company]
        rows = list(self.profiles.values())
        for column in ("id", "phone_number", "company_id"):
            if column in params:
                value = params[column].removeprefix("eq.")
                rows = [r for r in rows if r[column] == value]
        if params.get("select") == "*,employee_pins(pin_set)":
            return [
                {**r, "employee_pins": {"pin_set": self.pins[r["id"]]["pin_set"]}}
                if r["id"] in self.pins
                else {**r, "employee_pins": None}
                for r in rows
            ]
        return [self._join(r) for r in rows]

    def _join(self, profile: dict[str, Any]) -> dict[str, Any]:
        return {
            **profile,
            "companies": self.companies.get(profile["company_id"]),
            "employee_pins": self.pins.get(profile["id"]),
        }

    def _insert(self, table: str, body: dict[str, Any]) -> dict[str, Any]:
        now = "2024-06-01T12:00:00+00:00"
        row = {**body, "id": body.get("id") or f"{table}-{uuid.uuid4().hex[:8]}"}
        if table == "employee_pins":
            row = {**self.pins.get(body["profile_id"], {}), **row}
            self.pins[body["profile_id"]] = row
        elif table == "profiles":
            row.update(created_at=now, updated_at=now)
            self.profiles[row["id"]] = row
        elif table == "communications":
            row.update(created_at=now, updated_at=now)
            self.communications.append(row)
        elif table == "departments":
            row.update(created_at=now)
            self.departments.append(row)
        return row

    def _token_of(self, request: httpx.Request) -> str | None:
        auth = request.headers.get("authorization", "")
        return auth.removeprefix("Bearer ") if auth.startswith("Bearer ") else None

    def _bearer_user(self, request: httpx.Request) -> str | None:
        return self.tokens.get(self._token_of(request) or "")


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'flags.db'}",
        backend_url="http://backend.test",
        backend_anon_key="anon-key",
        pin_hash_rounds=4,
        default_dial_code="+255",
    )


@pytest.fixture()
def fake_backend() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture()
def transport(fake_backend: FakeSupabase) -> httpx.MockTransport:
    return httpx.MockTransport(fake_backend.handler)


@pytest_asyncio.fixture()
async def sessionmaker(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await create_schema(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest.fixture()
def flags(sessionmaker: async_sessionmaker[AsyncSession]) -> FlagStore:
    return FlagStore(sessionmaker)


@pytest.fixture()
def make_store(settings: Settings, transport: httpx.MockTransport, flags: FlagStore):
    """
    Build a fresh session stack. Passing `session` reuses an auth session, which is
    how a process restart with a persisted token is simulated.
    """

    def _make(*, session=None) -> SessionStore:
        backend = SupabaseBackend.from_settings(settings, transport=transport, session=session)
        fallback = FallbackController(settings=settings, real=backend)
        return SessionStore(settings=settings, fallback=fallback, flags=flags)

    return _make


@pytest_asyncio.fixture()
async def store(make_store) -> AsyncIterator[SessionStore]:
    s = make_store()
    try:
        yield s
    finally:
        await s.aclose()
        await s.fallback.aclose()


# --- Module Notes -----------------------------------------------------------
# The fake compares auth passwords in plaintext: it models the auth provider's
# observable behavior, not its storage.

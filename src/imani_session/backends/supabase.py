"""
imani_session.backends.supabase

HTTP client for the hosted backend (auth provider + REST row access + RPC).

Responsibilities:
- Speak the auth (`/auth/v1`), row (`/rest/v1`) and rpc (`/rest/v1/rpc`) endpoints.
- Hold the bearer session issued by the auth provider.
- Convert non-success responses into `BackendError` with the server's message/code.
"""

from __future__ import annotations

from typing import Any

import httpx

from imani_session.backends.base import PROFILE_SELECT, AuthSession, AuthUser, Row
from imani_session.domain.errors import BackendError
from imani_session.observability.logging import get_logger
from imani_session.settings import Settings

log = get_logger(__name__)

# PostgREST: "JSON object requested, multiple (or no) rows returned".
_NO_ROWS = "PGRST116"


class SupabaseBackend:
    name = "supabase"

    def __init__(
        self,
        *,
        settings: Settings,
        http: httpx.AsyncClient,
        session: AuthSession | None = None,
        owns_http: bool = False,
    ) -> None:
        self._settings = settings
        self._http = http
        self._session = session
        self._owns_http = owns_http

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        session: AuthSession | None = None,
    ) -> SupabaseBackend:
        http = httpx.AsyncClient(
            base_url=settings.backend_url.rstrip("/"),
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )
        return cls(settings=settings, http=http, session=session, owns_http=True)

    @property
    def session(self) -> AuthSession | None:
        return self._session

    def _headers(self, **extra: str) -> dict[str, str]:
        bearer = self._session.access_token if self._session else self._settings.backend_anon_key
        headers = {"apikey": self._settings.backend_anon_key, "Authorization": f"Bearer {bearer}"}
        headers.update(extra)
        return headers

    # -- auth ---------------------------------------------------------------

    async def get_current_user(self) -> AuthUser | None:
        if self._session is None:
            return None
        r = await self._http.get("/auth/v1/user", headers=self._headers())
        if r.status_code in (401, 403):
            # Expired/revoked token is "nobody signed in", not a failure.
            self._session = None
            return None
        _raise_for_error(r)
        return _auth_user(r.json())

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        r = await self._http.post(
            "/auth/v1/token",
            params={"grant_type": "password"},
            headers=self._headers(),
            json={"email": email, "password": password},
        )
        _raise_for_error(r)
        body = r.json()
        self._session = AuthSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            token_type=body.get("token_type", "bearer"),
            user=_auth_user(body["user"]),
        )
        return self._session

    async def sign_out(self) -> None:
        if self._session is None:
            return
        try:
            r = await self._http.post("/auth/v1/logout", headers=self._headers())
            if r.status_code not in (401, 403, 404):
                _raise_for_error(r)
        finally:
            self._session = None

    # -- profiles / credentials --------------------------------------------

    async def fetch_profile(self, profile_id: str) -> Row | None:
        return await self._select_one(
            "profiles", {"select": PROFILE_SELECT, "id": f"eq.{profile_id}"}
        )

    async def fetch_profile_by_phone(self, phone_number: str) -> Row | None:
        return await self._select_one(
            "profiles", {"select": PROFILE_SELECT, "phone_number": f"eq.{phone_number}"}
        )

    async def update_profile(self, profile_id: str, fields: Row) -> Row:
        return await self._update("profiles", {"id": f"eq.{profile_id}"}, fields)

    async def upsert_pin(self, *, profile_id: str, pin_hash: str) -> Row:
        r = await self._http.post(
            "/rest/v1/employee_pins",
            params={"on_conflict": "profile_id"},
            headers=self._headers(Prefer="resolution=merge-duplicates,return=representation"),
            json={"profile_id": profile_id, "pin_hash": pin_hash, "pin_set": True},
        )
        _raise_for_error(r)
        return _first(r.json(), table="employee_pins")

    async def register_company_and_admin(
        self,
        *,
        company_name: str,
        company_code: str,
        full_name: str,
        email: str,
        phone_number: str,
        password: str,
    ) -> Row:
        r = await self._http.post(
            "/rest/v1/rpc/register_company_and_admin",
            headers=self._headers(),
            json={
                "company_name": company_name,
                "company_code": company_code,
                "full_name": full_name,
                "email": email,
                "phone_number": phone_number,
                "password": password,
            },
        )
        _raise_for_error(r)
        data = r.json()
        return data if isinstance(data, dict) else {"result": data}

    # -- communications -----------------------------------------------------

    async def list_communications(self) -> list[Row]:
        return await self._select("communications", {"select": "*", "order": "created_at.desc"})

    async def insert_communication(self, row: Row) -> Row:
        return await self._insert("communications", row)

    async def update_communication(self, communication_id: str, fields: Row) -> Row:
        return await self._update("communications", {"id": f"eq.{communication_id}"}, fields)

    # -- employee directory -------------------------------------------------

    async def list_profiles(self, company_id: str) -> list[Row]:
        return await self._select(
            "profiles",
            {
                "select": "*,employee_pins(pin_set)",
                "company_id": f"eq.{company_id}",
                "order": "created_at.desc",
            },
        )

    async def insert_profile(self, row: Row) -> Row:
        return await self._insert("profiles", row)

    async def insert_pin(self, row: Row) -> Row:
        return await self._insert("employee_pins", row)

    async def list_departments(self, company_id: str) -> list[Row]:
        return await self._select(
            "departments", {"select": "*", "company_id": f"eq.{company_id}", "order": "name.asc"}
        )

    async def insert_department(self, row: Row) -> Row:
        return await self._insert("departments", row)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # -- rest helpers -------------------------------------------------------

    async def _select(self, table: str, params: dict[str, str]) -> list[Row]:
        r = await self._http.get(f"/rest/v1/{table}", params=params, headers=self._headers())
        _raise_for_error(r)
        return list(r.json())

    async def _select_one(self, table: str, params: dict[str, str]) -> Row | None:
        r = await self._http.get(
            f"/rest/v1/{table}",
            params=params,
            headers=self._headers(Accept="application/vnd.pgrst.object+json"),
        )
        if r.status_code == 406 and _error_code(r) == _NO_ROWS:
            return None
        _raise_for_error(r)
        return r.json()

    async def _insert(self, table: str, row: Row) -> Row:
        r = await self._http.post(
            f"/rest/v1/{table}",
            headers=self._headers(Prefer="return=representation"),
            json=row,
        )
        _raise_for_error(r)
        return _first(r.json(), table=table)

    async def _update(self, table: str, filters: dict[str, str], fields: Row) -> Row:
        r = await self._http.patch(
            f"/rest/v1/{table}",
            params=filters,
            headers=self._headers(Prefer="return=representation"),
            json=fields,
        )
        _raise_for_error(r)
        return _first(r.json(), table=table)


def _auth_user(body: dict[str, Any]) -> AuthUser:
    return AuthUser(id=str(body["id"]), email=body.get("email"))


def _first(data: Any, *, table: str) -> Row:
    rows = data if isinstance(data, list) else [data]
    if not rows:
        raise BackendError(f"No {table} row returned", code=_NO_ROWS)
    return rows[0]


def _error_code(r: httpx.Response) -> str | None:
    try:
        body = r.json()
    except ValueError:
        return None
    code = body.get("code") if isinstance(body, dict) else None
    return str(code) if code is not None else None


def _raise_for_error(r: httpx.Response) -> None:
    if r.is_success:
        return
    try:
        body = r.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    # Auth endpoints use msg/error_description, rest endpoints use message.
    message = (
        body.get("msg")
        or body.get("message")
        or body.get("error_description")
        or body.get("error")
        or r.text
        or f"HTTP {r.status_code}"
    )
    code = body.get("code")
    log.info("backend.error", status=r.status_code, code=code, url=str(r.request.url.path))
    raise BackendError(
        str(message), code=str(code) if code is not None else None, status=r.status_code
    )


# --- Module Notes -----------------------------------------------------------
# The anon key authenticates the app; the bearer token authenticates the actor.
# Without a signed-in session the anon key doubles as the bearer, exactly like the
# hosted backend's own client libraries.

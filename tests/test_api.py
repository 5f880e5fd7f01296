"""
tests.test_api

HTTP surface: boot/readiness, per-client sessions, session endpoints, error mapping
and role gating.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from imani_session.api.app import create_app

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, EMPLOYEE_PHONE, EMPLOYEE_PIN, FakeSupabase


@pytest_asyncio.fixture()
async def app(settings, transport) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings, backend_transport=transport)

    # httpx ASGITransport does not manage lifespan; run it explicitly.
    async with app.router.lifespan_context(app):
        yield app


def _session_client(app: FastAPI) -> httpx.AsyncClient:
    """An API client that keeps presenting the session token it was last handed."""

    async def keep_token(response: httpx.Response) -> None:
        token = response.headers.get("x-session-token")
        if token:
            c.headers["Authorization"] = f"Bearer {token}"

    c = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        event_hooks={"response": [keep_token]},
    )
    return c


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with _session_client(app) as c:
        r = await c.post("/v1/session/initialize")
        assert r.status_code == 200
        yield c


@pytest.mark.asyncio
async def test_health_endpoints(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json() == {"status": "ready", "client_sessions": 1}
    assert "x-request-id" in r.headers


@pytest.mark.asyncio
async def test_initialize_opens_empty_session(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/session")
    assert r.json() == {
        "actor": None,
        "is_loading": False,
        "last_error": None,
        "last_error_message": None,
        "demo_mode": False,
    }


@pytest.mark.asyncio
async def test_pin_sign_in_and_state(client: httpx.AsyncClient) -> None:
    r = await client.post(
        "/v1/session/sign-in/pin", json={"phone_number": EMPLOYEE_PHONE, "pin": EMPLOYEE_PIN}
    )
    assert r.status_code == 200
    actor = r.json()["actor"]
    assert actor["id"] == "u-emp"
    assert "pin_hash" not in actor["pin"]

    r = await client.post("/v1/session/sign-out")
    assert r.json()["actor"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("phone", "pin", "status", "kind"),
    [
        (EMPLOYEE_PHONE, "123", 401, "InvalidPin"),
        ("+255700000003", "1234", 409, "PinNotSet"),
        ("+255799999999", "1234", 404, "ProfileNotFound"),
    ],
)
async def test_pin_errors_map_to_status(
    client: httpx.AsyncClient, phone: str, pin: str, status: int, kind: str
) -> None:
    r = await client.post("/v1/session/sign-in/pin", json={"phone_number": phone, "pin": pin})

    assert r.status_code == status
    assert r.json()["error"] == kind

    state = (await client.get("/v1/session")).json()
    assert state["last_error"] == kind
    assert state["is_loading"] is False


@pytest.mark.asyncio
async def test_registration_validation_is_local(
    client: httpx.AsyncClient, fake_backend: FakeSupabase
) -> None:
    r = await client.post(
        "/v1/companies/register",
        json={
            "company_name": "Globex",
            "company_code": "glob ex",
            "admin_full_name": "Hank",
            "admin_email": "hr@globex.test",
            "admin_password": "hunter22",
        },
    )

    assert r.status_code == 422
    assert r.json()["error"] == "ValidationError"
    assert fake_backend.requests == []


@pytest.mark.asyncio
async def test_register_company(client: httpx.AsyncClient) -> None:
    r = await client.post(
        "/v1/companies/register",
        json={
            "company_name": "Globex",
            "company_code": "globex",
            "admin_full_name": "Hank Scorpio",
            "admin_email": "hr@globex.test",
            "admin_password": "hunter22",
        },
    )

    assert r.status_code == 201
    assert r.json()["actor"]["role"] == "hr_admin"
    assert r.json()["actor"]["company"]["code"] == "globex"


@pytest.mark.asyncio
async def test_communications_role_gating(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/communications")
    assert r.status_code == 401

    await client.post(
        "/v1/session/sign-in/pin", json={"phone_number": EMPLOYEE_PHONE, "pin": EMPLOYEE_PIN}
    )
    r = await client.post(
        "/v1/communications",
        json={"channel": "whatsapp", "type": "leave_request", "content": "Friday off"},
    )
    assert r.status_code == 201
    created = r.json()
    assert created["employee_id"] == "u-emp"
    assert created["status"] == "pending"

    r = await client.patch(
        f"/v1/communications/{created['id']}/status", json={"status": "approved"}
    )
    assert r.status_code == 403

    r = await client.get("/v1/employees")
    assert r.status_code == 403
    assert r.json()["error"] == "PermissionDenied"

    await client.post(
        "/v1/session/sign-in", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    r = await client.patch(
        f"/v1/communications/{created['id']}/status", json={"status": "approved"}
    )
    assert r.status_code == 200
    assert r.json()["status"] == "approved"


@pytest.mark.asyncio
async def test_profile_update(client: httpx.AsyncClient) -> None:
    await client.post(
        "/v1/session/sign-in", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )

    r = await client.patch(
        "/v1/session/profile", json={"full_name": "Ada", "communication_channels": ["whatsapp"]}
    )

    assert r.status_code == 200
    actor = r.json()["actor"]
    assert actor["full_name"] == "Ada"
    assert actor["communication_channels"] == ["whatsapp"]


@pytest.mark.asyncio
async def test_demo_mode_endpoint(client: httpx.AsyncClient) -> None:
    r = await client.post("/v1/session/demo")
    assert r.status_code == 200
    assert r.json()["demo_mode"] is True
    assert r.json()["actor"]["role"] == "hr_admin"

    r = await client.get("/v1/employees")
    assert r.status_code == 200
    assert len(r.json()) == 4

    r = await client.post("/v1/session/sign-out")
    assert r.json()["demo_mode"] is False


@pytest.mark.asyncio
async def test_phone_status(client: httpx.AsyncClient) -> None:
    r = await client.post("/v1/session/phone-status", json={"phone_number": "0700000004"})
    assert r.json() == {"is_registered": True, "is_pin_set": False}


@pytest.mark.asyncio
async def test_sessions_are_isolated_per_client(app: FastAPI, client: httpx.AsyncClient) -> None:
    r = await client.post(
        "/v1/session/sign-in", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert r.status_code == 200
    assert r.json()["actor"]["role"] == "hr_admin"

    async with _session_client(app) as other:
        # No token: nothing to resolve, and certainly not the admin's session.
        assert (await other.get("/v1/employees")).status_code == 401
        assert (await other.get("/v1/session")).status_code == 401

        r = await other.post("/v1/session/initialize")
        assert r.json()["actor"] is None
        assert r.headers["x-session-token"] != client.headers["Authorization"].removeprefix(
            "Bearer "
        )
        assert (await other.get("/v1/employees")).status_code == 401

        r = await other.post("/v1/session/demo")
        assert r.json()["demo_mode"] is True

    r = await client.get("/v1/session")
    assert r.json()["actor"]["email"] == ADMIN_EMAIL
    assert r.json()["demo_mode"] is False


@pytest.mark.asyncio
async def test_sign_in_without_token_opens_a_session(app: FastAPI) -> None:
    async with _session_client(app) as c:
        r = await c.post(
            "/v1/session/sign-in", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        assert r.status_code == 200
        assert "x-session-token" in r.headers

        r = await c.get("/v1/employees")
        assert r.status_code == 200


@pytest.mark.asyncio
async def test_invalid_session_token_is_rejected(app: FastAPI) -> None:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": "Bearer not-a-token"},
    ) as c:
        assert (await c.get("/v1/session")).status_code == 401
        assert (await c.post("/v1/session/initialize")).status_code == 401

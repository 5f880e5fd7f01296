"""
imani_session.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Convert the caller's bearer token into its own client session.
- Open a new client session (and hand back its token) on the sign-in style routes.
- Role gating for routes, based on the actor held in the caller's session state.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from imani_session.auth.jwt import JwtValidationError
from imani_session.auth.roles import require_role
from imani_session.domain.errors import NotAuthenticated, PermissionDenied
from imani_session.domain.models import Actor, Role
from imani_session.services.communications import CommunicationsService
from imani_session.services.employees import EmployeeDirectory
from imani_session.services.session_store import SessionStore
from imani_session.services.sessions import ClientSession, SessionRegistry

SESSION_TOKEN_HEADER = "x-session-token"

_bearer = HTTPBearer(auto_error=False)


def session_registry(request: Request) -> SessionRegistry:
    # Created on startup in `imani_session.api.app.create_app`.
    return request.app.state.sessions  # type: ignore[attr-defined]


async def _resolve(
    request: Request, registry: SessionRegistry, creds: HTTPAuthorizationCredentials
) -> ClientSession:
    try:
        client_id = registry.client_id_from_token(creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid session token: {e}"
        ) from e
    client = await registry.get(client_id)
    request.state.client_session = client
    return client


async def client_session(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    registry: SessionRegistry = Depends(session_registry),
) -> ClientSession:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing session token")
    return await _resolve(request, registry, creds)


async def open_client_session(
    request: Request,
    response: Response,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    registry: SessionRegistry = Depends(session_registry),
) -> ClientSession:
    """
    The caller's session when it presents a token, otherwise a fresh one. The token
    naming the session is returned in the `x-session-token` response header.
    """

    if creds is None or not creds.credentials:
        client = await registry.open()
        request.state.client_session = client
    else:
        client = await _resolve(request, registry, creds)
    response.headers[SESSION_TOKEN_HEADER] = registry.token_for(client)
    return client


def session_store(client: ClientSession = Depends(client_session)) -> SessionStore:
    return client.store


def open_session_store(client: ClientSession = Depends(open_client_session)) -> SessionStore:
    return client.store


def communications_service(
    client: ClientSession = Depends(client_session),
) -> CommunicationsService:
    return client.communications


def employee_directory(client: ClientSession = Depends(client_session)) -> EmployeeDirectory:
    return client.employees


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def current_actor(store: SessionStore = Depends(session_store)) -> Actor:
    try:
        return require_role(store.state)
    except NotAuthenticated as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=e.message) from e


def require_roles(*required: Role):
    def _dep(store: SessionStore = Depends(session_store)) -> Actor:
        try:
            return require_role(store.state, *required)
        except NotAuthenticated as e:
            raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=e.message) from e
        except PermissionDenied as e:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail=str(e)) from e

    return _dep

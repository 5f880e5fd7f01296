"""
imani_session.services.sessions

Per-client session registry for the HTTP surface.

Responsibilities:
- Give every API client its own session stack (hosted backend client, fallback
  controller, session store and the services bound to them).
- Mint and validate the bearer token that names a client's stack.
- Restore a stack for a still-valid token after a restart or eviction; the
  client's durable demo flag is keyed by its id so it comes back too.
- Bound the number of live stacks, closing the least recently used.
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta

import httpx

from imani_session.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, issue_token
from imani_session.backends.supabase import SupabaseBackend
from imani_session.observability.logging import get_logger
from imani_session.services.communications import CommunicationsService
from imani_session.services.employees import EmployeeDirectory
from imani_session.services.fallback import FallbackController
from imani_session.services.flags import FlagStore
from imani_session.services.session_store import SessionStore
from imani_session.settings import Settings

log = get_logger(__name__)


@dataclass(slots=True)
class ClientSession:
    client_id: str
    store: SessionStore
    communications: CommunicationsService
    employees: EmployeeDirectory

    async def aclose(self) -> None:
        await self.store.aclose()
        await self.store.fallback.aclose()


class SessionRegistry:
    def __init__(
        self,
        *,
        settings: Settings,
        flags: FlagStore,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._flags = flags
        self._transport = transport
        self._jwt = JwtConfig.for_client_sessions(settings)
        self._clients: OrderedDict[str, ClientSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._clients)

    def flag_key(self, client_id: str) -> str:
        return f"{self._settings.demo_flag_key}:{client_id}"

    def token_for(self, client: ClientSession) -> str:
        return issue_token(
            cfg=self._jwt,
            subject=client.client_id,
            ttl=timedelta(minutes=self._settings.session_token_ttl_minutes),
        )

    def client_id_from_token(self, token: str) -> str:
        payload = decode_and_validate(cfg=self._jwt, token=token)
        client_id = str(payload.get("sub") or "")
        if not client_id:
            raise JwtValidationError("Token has no subject")
        return client_id

    async def open(self) -> ClientSession:
        """Start a new, unauthenticated client session."""

        return await self._build(uuid.uuid4().hex)

    async def get(self, client_id: str) -> ClientSession:
        client = self._clients.get(client_id)
        if client is not None:
            self._clients.move_to_end(client_id)
            return client
        log.info("client_session.restore", client_id=client_id)
        return await self._build(client_id)

    async def _build(self, client_id: str) -> ClientSession:
        backend = SupabaseBackend.from_settings(self._settings, transport=self._transport)
        fallback = FallbackController(settings=self._settings, real=backend)
        store = SessionStore(
            settings=self._settings,
            fallback=fallback,
            flags=self._flags,
            flag_key=self.flag_key(client_id),
        )
        client = ClientSession(
            client_id=client_id,
            store=store,
            communications=CommunicationsService(fallback=fallback),
            employees=EmployeeDirectory(session=store),
        )
        # Registered before initializing: concurrent requests for the same client
        # queue on the store's lock instead of building a second stack.
        self._clients[client_id] = client
        await self._evict()
        state = await store.initialize()
        log.info(
            "client_session.opened",
            client_id=client_id,
            demo_mode=state.demo_mode,
            authenticated=state.is_authenticated,
        )
        return client

    async def _evict(self) -> None:
        while len(self._clients) > self._settings.max_client_sessions:
            client_id, client = self._clients.popitem(last=False)
            await client.aclose()
            log.info("client_session.evicted", client_id=client_id)

    async def aclose(self) -> None:
        while self._clients:
            _, client = self._clients.popitem()
            await client.aclose()

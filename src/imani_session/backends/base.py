"""
imani_session.backends.base

Backend interface shared by the hosted and demo implementations.

Responsibilities:
- Describe auth, row and rpc operations as JSON-shaped contracts.
- Define the auth identity/session value types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

Row = dict[str, Any]

# `profiles` joined with the tenant and PIN credential, as every actor lookup needs.
PROFILE_SELECT = "*,companies(*),employee_pins(*)"


@dataclass(frozen=True, slots=True)
class AuthUser:
    id: str
    email: str | None = None


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    user: AuthUser
    refresh_token: str | None = None
    token_type: str = "bearer"


@runtime_checkable
class Backend(Protocol):
    """
    Every method suspends at most once per remote call; failures are raised as
    `BackendError` or `httpx.TransportError`.
    """

    name: str

    # Auth provider
    async def get_current_user(self) -> AuthUser | None: ...

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession: ...

    async def sign_out(self) -> None: ...

    # Profiles / credentials
    async def fetch_profile(self, profile_id: str) -> Row | None: ...

    async def fetch_profile_by_phone(self, phone_number: str) -> Row | None: ...

    async def update_profile(self, profile_id: str, fields: Row) -> Row: ...

    async def upsert_pin(self, *, profile_id: str, pin_hash: str) -> Row: ...

    # Security-definer bootstrap of a new tenant + admin
    async def register_company_and_admin(
        self,
        *,
        company_name: str,
        company_code: str,
        full_name: str,
        email: str,
        phone_number: str,
        password: str,
    ) -> Row: ...

    # Communications
    async def list_communications(self) -> list[Row]: ...

    async def insert_communication(self, row: Row) -> Row: ...

    async def update_communication(self, communication_id: str, fields: Row) -> Row: ...

    # Employee directory
    async def list_profiles(self, company_id: str) -> list[Row]: ...

    async def insert_profile(self, row: Row) -> Row: ...

    async def insert_pin(self, row: Row) -> Row: ...

    async def list_departments(self, company_id: str) -> list[Row]: ...

    async def insert_department(self, row: Row) -> Row: ...

    async def aclose(self) -> None: ...

"""
imani_session.backends.demo

Local, simulated backend used in demo mode.

Responsibilities:
- Serve reads from the seeded demo dataset.
- Apply writes to an in-memory copy and return rows shaped exactly like the hosted
  backend's (same field names, fresh ids, current timestamps).
- Simulate the auth provider (password and synthesized PIN logins) with locally
  signed bearer tokens.
"""

from __future__ import annotations

import copy
import uuid
from datetime import UTC, datetime, timedelta

from imani_session.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, issue_token
from imani_session.auth.pins import check_pin, check_secret, hash_secret
from imani_session.backends.base import AuthSession, AuthUser, Row
from imani_session.backends.demo_data import DEMO_ADMIN_ID, DemoDataset, build_demo_dataset
from imani_session.domain.errors import BackendError
from imani_session.settings import Settings

_NO_ROWS = "PGRST116"


def _now() -> str:
    return datetime.now(tz=UTC).isoformat()


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class DemoBackend:
    name = "demo"

    def __init__(self, *, settings: Settings, dataset: DemoDataset | None = None) -> None:
        self._settings = settings
        self._jwt = JwtConfig.from_settings(settings)
        self._data = dataset or build_demo_dataset(hash_rounds=settings.pin_hash_rounds)
        # Entering demo mode means acting as the seeded HR admin.
        self._session: AuthSession | None = self._issue_session(DEMO_ADMIN_ID)

    @property
    def dataset(self) -> DemoDataset:
        return self._data

    def seeded_actor_row(self) -> Row:
        row = self._profile_row(DEMO_ADMIN_ID)
        if row is None:
            raise BackendError(
                f"Demo dataset has no profiles row with id={DEMO_ADMIN_ID}", code=_NO_ROWS
            )
        return row

    # -- auth ---------------------------------------------------------------

    async def get_current_user(self) -> AuthUser | None:
        if self._session is None:
            return None
        try:
            claims = decode_and_validate(cfg=self._jwt, token=self._session.access_token)
        except JwtValidationError:
            self._session = None
            return None
        return AuthUser(id=str(claims["sub"]), email=claims.get("email"))

    async def sign_in_with_password(self, *, email: str, password: str) -> AuthSession:
        email = email.strip().lower()
        suffix = f"@temp.{self._settings.pin_login_domain}"
        if email.endswith(suffix):
            profile_id = self._pin_login(email.removesuffix(suffix), password)
        else:
            user = self._data.auth_users.get(email)
            if user is None or not check_secret(password, user["password_hash"]):
                raise BackendError(
                    "Invalid login credentials", code="invalid_credentials", status=400
                )
            profile_id = user["id"]
        self._session = self._issue_session(profile_id)
        return self._session

    async def sign_out(self) -> None:
        self._session = None

    # -- profiles / credentials --------------------------------------------

    async def fetch_profile(self, profile_id: str) -> Row | None:
        return self._profile_row(profile_id)

    async def fetch_profile_by_phone(self, phone_number: str) -> Row | None:
        for p in self._data.profiles:
            if p.get("phone_number") == phone_number:
                return self._profile_row(p["id"])
        return None

    async def update_profile(self, profile_id: str, fields: Row) -> Row:
        profile = self._find(self._data.profiles, "id", profile_id, table="profiles")
        profile.update({k: v for k, v in fields.items() if k not in ("id", "created_at")})
        profile["updated_at"] = _now()
        return copy.deepcopy(profile)

    async def upsert_pin(self, *, profile_id: str, pin_hash: str) -> Row:
        now = _now()
        for pin in self._data.pins:
            if pin["profile_id"] == profile_id:
                pin.update({"pin_hash": pin_hash, "pin_set": True, "updated_at": now})
                return copy.deepcopy(pin)
        return await self.insert_pin(
            {"profile_id": profile_id, "pin_hash": pin_hash, "pin_set": True}
        )

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
        email = email.strip().lower()
        if any(c["code"] == company_code for c in self._data.companies):
            raise BackendError(
                'duplicate key value violates unique constraint "companies_code_key"',
                code="23505",
                status=409,
            )
        if email in self._data.auth_users:
            raise BackendError("User already registered", code="user_already_exists", status=422)

        now = _now()
        company = {
            "id": str(uuid.uuid4()),
            "name": company_name,
            "code": company_code,
            "email_domain": email.split("@", 1)[1],
            "created_at": now,
            "updated_at": now,
        }
        profile = {
            "id": str(uuid.uuid4()),
            "company_id": company["id"],
            "role": "hr_admin",
            "full_name": full_name,
            "phone_number": phone_number or None,
            "email": email,
            "communication_channels": ["email"],
            "profile_image_url": None,
            "id_card_url": None,
            "department": None,
            "created_at": now,
            "updated_at": now,
        }
        # Both rows land together or not at all, mirroring the server-side transaction.
        self._data.companies.append(company)
        self._data.profiles.append(profile)
        self._data.auth_users[email] = {
            "id": profile["id"],
            "password_hash": hash_secret(password, rounds=self._settings.pin_hash_rounds),
        }
        return {"company_id": company["id"], "user_id": profile["id"]}

    # -- communications -----------------------------------------------------

    async def list_communications(self) -> list[Row]:
        rows = sorted(self._data.communications, key=lambda c: c["created_at"], reverse=True)
        return copy.deepcopy(rows)

    async def insert_communication(self, row: Row) -> Row:
        now = _now()
        comm = {
            "status": "pending",
            **row,
            "id": row.get("id") or _new_id("comm"),
            "created_at": now,
            "updated_at": now,
        }
        self._data.communications.insert(0, comm)
        return copy.deepcopy(comm)

    async def update_communication(self, communication_id: str, fields: Row) -> Row:
        comm = self._find(self._data.communications, "id", communication_id, table="communications")
        comm.update(fields)
        comm["updated_at"] = _now()
        return copy.deepcopy(comm)

    # -- employee directory -------------------------------------------------

    async def list_profiles(self, company_id: str) -> list[Row]:
        rows = []
        for p in self._data.profiles:
            if p["company_id"] != company_id:
                continue
            pin = self._pin_for(p["id"])
            rows.append({**p, "employee_pins": {"pin_set": pin["pin_set"]} if pin else None})
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return copy.deepcopy(rows)

    async def insert_profile(self, row: Row) -> Row:
        if row.get("phone_number") and any(
            p.get("phone_number") == row["phone_number"] for p in self._data.profiles
        ):
            raise BackendError(
                'duplicate key value violates unique constraint "profiles_phone_number_key"',
                code="23505",
                status=409,
            )
        now = _now()
        profile = {
            "profile_image_url": None,
            "id_card_url": None,
            "department": None,
            "email": None,
            **row,
            "id": row.get("id") or str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
        }
        self._data.profiles.append(profile)
        return copy.deepcopy(profile)

    async def insert_pin(self, row: Row) -> Row:
        now = _now()
        pin = {
            "pin_hash": None,
            "pin_set": False,
            **row,
            "id": row.get("id") or _new_id("pin"),
            "created_at": now,
            "updated_at": now,
        }
        self._data.pins.append(pin)
        return copy.deepcopy(pin)

    async def list_departments(self, company_id: str) -> list[Row]:
        rows = [d for d in self._data.departments if d["company_id"] == company_id]
        return copy.deepcopy(sorted(rows, key=lambda d: d["name"]))

    async def insert_department(self, row: Row) -> Row:
        now = _now()
        dept = {**row, "id": row.get("id") or _new_id("dept"), "created_at": now, "updated_at": now}
        self._data.departments.append(dept)
        return copy.deepcopy(dept)

    async def aclose(self) -> None:
        self._session = None

    # -- internals ----------------------------------------------------------

    def _issue_session(self, profile_id: str) -> AuthSession:
        email = next(
            (e for e, u in self._data.auth_users.items() if u["id"] == profile_id),
            None,
        )
        token = issue_token(
            cfg=self._jwt,
            subject=profile_id,
            email=email,
            ttl=timedelta(minutes=self._settings.demo_token_ttl_minutes),
        )
        return AuthSession(access_token=token, user=AuthUser(id=profile_id, email=email))

    def _pin_login(self, phone_number: str, pin: str) -> str:
        profile = next(
            (p for p in self._data.profiles if p.get("phone_number") == phone_number), None
        )
        pin_row = self._pin_for(profile["id"]) if profile else None
        if pin_row is None or not pin_row["pin_set"] or not check_pin(pin, pin_row["pin_hash"]):
            raise BackendError("Invalid login credentials", code="invalid_credentials", status=400)
        return profile["id"]

    def _pin_for(self, profile_id: str) -> Row | None:
        return next((p for p in self._data.pins if p["profile_id"] == profile_id), None)

    def _profile_row(self, profile_id: str) -> Row | None:
        profile = next((p for p in self._data.profiles if p["id"] == profile_id), None)
        if profile is None:
            return None
        company = next(
            (c for c in self._data.companies if c["id"] == profile["company_id"]), None
        )
        return copy.deepcopy(
            {**profile, "companies": company, "employee_pins": self._pin_for(profile_id)}
        )

    @staticmethod
    def _find(rows: list[Row], key: str, value: str, *, table: str) -> Row:
        for row in rows:
            if row[key] == value:
                return row
        raise BackendError(f"No {table} row matches {key}={value}", code=_NO_ROWS, status=406)


# --- Module Notes -----------------------------------------------------------
# Nothing here is persisted: a new instance (and therefore a fresh dataset) is built
# every time demo mode is entered.

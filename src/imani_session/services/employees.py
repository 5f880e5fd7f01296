"""
imani_session.services.employees

Employee directory for HR admins and managers.

Responsibilities:
- List employees (with PIN onboarding status) and departments of the actor's company.
- Onboard an employee: profile row plus an unset PIN credential, completed later
  through the WhatsApp channel.
- Create departments.
"""

from __future__ import annotations

from imani_session.auth.roles import require_role
from imani_session.auth.validators import normalize_phone, validate_email, validate_phone
from imani_session.domain.errors import ValidationError
from imani_session.domain.models import CommunicationChannel, Department, EmployeeSummary, Role
from imani_session.observability.logging import get_logger
from imani_session.services.session_store import SessionStore

log = get_logger(__name__)


class EmployeeDirectory:
    def __init__(self, *, session: SessionStore) -> None:
        self._session = session

    @property
    def _fallback(self):
        return self._session.fallback

    def _company_id(self) -> str:
        # Read at call time: a demo switch mid-call replaces the actor (and its company).
        actor = self._session.state.actor
        return actor.company_id if actor else ""

    async def list_employees(self) -> list[EmployeeSummary]:
        require_role(self._session.state, Role.hr_admin, Role.manager)
        rows = await self._fallback.run(
            lambda b: b.list_profiles(self._company_id()), operation="list_employees"
        )
        return [EmployeeSummary.from_row(r) for r in rows]

    async def add_employee(
        self,
        *,
        full_name: str,
        phone_number: str,
        dial_code: str | None = None,
        email: str | None = None,
        role: Role | str = Role.employee,
        department: str | None = None,
        communication_channels: list[CommunicationChannel | str] | None = None,
    ) -> EmployeeSummary:
        require_role(self._session.state, Role.hr_admin)
        if not full_name.strip():
            raise ValidationError("Employee name is required")
        phone = validate_phone(normalize_phone(phone_number, self._session.dial_code(dial_code)))
        channels = [
            CommunicationChannel(c).value
            for c in (communication_channels or [CommunicationChannel.whatsapp])
        ]
        profile = {
            "full_name": full_name.strip(),
            "phone_number": phone,
            "email": validate_email(email) if email else None,
            "role": Role(role).value,
            "department": department,
            "communication_channels": channels,
        }

        async def _onboard(backend):
            created = await backend.insert_profile({**profile, "company_id": self._company_id()})
            # PIN row without a PIN: sign-in reports "complete setup via WhatsApp".
            await backend.insert_pin({"profile_id": created["id"], "pin_set": False})
            return created

        row = await self._fallback.run(_onboard, operation="add_employee")
        log.info("employee.added", profile_id=row["id"], company_id=row["company_id"])
        return EmployeeSummary.from_row({**row, "employee_pins": {"pin_set": False}})

    async def list_departments(self) -> list[Department]:
        require_role(self._session.state, Role.hr_admin, Role.manager)
        rows = await self._fallback.run(
            lambda b: b.list_departments(self._company_id()), operation="list_departments"
        )
        return [Department.model_validate(r) for r in rows]

    async def create_department(self, name: str) -> Department:
        require_role(self._session.state, Role.hr_admin)
        if not name.strip():
            raise ValidationError("Department name is required")
        row = await self._fallback.run(
            lambda b: b.insert_department({"name": name.strip(), "company_id": self._company_id()}),
            operation="create_department",
        )
        return Department.model_validate(row)

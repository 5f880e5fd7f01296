"""
imani_session.domain.models

Rows exchanged with the backend and the Actor built from them.

Responsibilities:
- Parse JSON rows using the relational store's field names
  (`profiles`, `companies`, `employee_pins`, `departments`, `communications`).
- Build the unified `Actor` (profile + tenant + PIN status).
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(enum.StrEnum):
    hr_admin = "hr_admin"
    manager = "manager"
    employee = "employee"


class CommunicationChannel(enum.StrEnum):
    email = "email"
    whatsapp = "whatsapp"


class CommunicationType(enum.StrEnum):
    leave_request = "leave_request"
    complaint = "complaint"
    query = "query"
    notice = "notice"
    payment_advance = "payment_advance"


class CommunicationStatus(enum.StrEnum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    completed = "completed"


class _Row(BaseModel):
    # Backends may return extra columns (e.g. joined tables); ignore what we don't model.
    model_config = ConfigDict(extra="ignore", frozen=True)


class Tenant(_Row):
    id: str
    name: str
    code: str = Field(pattern=r"^[A-Za-z0-9_-]+$")
    email_domain: str | None = None
    created_at: datetime | None = None


class PinCredential(_Row):
    id: str | None = None
    profile_id: str
    pin_hash: str | None = None
    # A row can exist before the PIN is chosen (pending WhatsApp onboarding).
    pin_set: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_usable(self) -> bool:
        return self.pin_set and bool(self.pin_hash)


class Actor(_Row):
    """
    The authenticated principal of a session. Always belongs to exactly one tenant.
    """

    id: str
    full_name: str | None = None
    role: Role
    company_id: str
    company: Tenant
    communication_channels: list[CommunicationChannel] = Field(min_length=1)
    phone_number: str | None = None
    email: str | None = None
    department: str | None = None
    pin: PinCredential | None = None

    @field_validator("communication_channels")
    @classmethod
    def _unique_channels(cls, value: list[CommunicationChannel]) -> list[CommunicationChannel]:
        return list(dict.fromkeys(value))

    def has_role(self, *roles: Role | str) -> bool:
        return self.role in {Role(r) for r in roles}

    @property
    def pin_set(self) -> bool:
        return self.pin is not None and self.pin.pin_set

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Actor:
        """
        Build an Actor from a `profiles` row joined with `companies(*)` and
        `employee_pins(*)`. The pin join may come back as an object, a list or null
        depending on how the relationship is declared server-side.
        """

        pins = row.get("employee_pins")
        if isinstance(pins, list):
            pins = pins[0] if pins else None
        return cls.model_validate(
            {
                **row,
                "company": row.get("companies"),
                "pin": pins,
            }
        )


class Department(_Row):
    id: str
    name: str
    company_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Communication(_Row):
    id: str
    employee_id: str
    channel: CommunicationChannel
    type: CommunicationType
    content: str
    status: CommunicationStatus = CommunicationStatus.pending
    created_at: datetime
    updated_at: datetime


class EmployeeSummary(_Row):
    id: str
    full_name: str | None = None
    phone_number: str | None = None
    email: str | None = None
    role: Role
    department: str | None = None
    communication_channels: list[CommunicationChannel] = Field(default_factory=list)
    pin_set: bool = False

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> EmployeeSummary:
        pins = row.get("employee_pins")
        if isinstance(pins, list):
            pins = pins[0] if pins else None
        pin_set = bool(pins.get("pin_set")) if isinstance(pins, dict) else False
        return cls.model_validate({**row, "pin_set": pin_set})


class PhoneStatus(_Row):
    is_registered: bool
    is_pin_set: bool
    actor: Actor | None = None


# --- Module Notes -----------------------------------------------------------
# Field names match the hosted backend's columns so demo rows and real rows parse
# through the same models.

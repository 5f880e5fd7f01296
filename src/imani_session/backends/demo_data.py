"""
imani_session.backends.demo_data

Seeded dataset for demo mode.

Responsibilities:
- Build a fresh, deterministic in-memory dataset: one tenant, one HR admin actor,
  sample employees, departments and communications.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from imani_session.auth.pins import hash_pin, hash_secret
from imani_session.backends.base import Row

DEMO_COMPANY_ID = "demo-company-id"
DEMO_ADMIN_ID = "demo-user-id"
DEMO_ADMIN_EMAIL = "demo@imani.io"
DEMO_ADMIN_PASSWORD = "demo-password"

# phone -> PIN for the seeded employees that completed onboarding.
DEMO_EMPLOYEE_PINS = {"+255712345678": "1234", "+255723456789": "4321"}


@dataclass(slots=True)
class DemoDataset:
    companies: list[Row] = field(default_factory=list)
    profiles: list[Row] = field(default_factory=list)
    pins: list[Row] = field(default_factory=list)
    departments: list[Row] = field(default_factory=list)
    communications: list[Row] = field(default_factory=list)
    # email -> {"id": profile id, "password_hash": bcrypt hash}
    auth_users: dict[str, Row] = field(default_factory=dict)


def _ts(moment: datetime) -> str:
    return moment.isoformat()


def build_demo_dataset(*, hash_rounds: int = 12, now: datetime | None = None) -> DemoDataset:
    now = now or datetime.now(tz=UTC)
    day = timedelta(days=1)
    created = _ts(now)

    ds = DemoDataset()
    ds.companies.append(
        {
            "id": DEMO_COMPANY_ID,
            "name": "Demo Company Inc.",
            "code": "demo-co",
            "email_domain": "demo.imani.io",
            "created_at": created,
            "updated_at": created,
        }
    )

    ds.profiles.extend(
        [
            _profile(
                DEMO_ADMIN_ID,
                "Demo HR Admin",
                role="hr_admin",
                email=DEMO_ADMIN_EMAIL,
                phone=None,
                department="Human Resources",
                channels=["email", "whatsapp"],
                created=created,
            ),
            _profile(
                "emp-1",
                "John Doe",
                role="employee",
                email="john.doe@example.com",
                phone="+255712345678",
                department="Human Resources",
                channels=["whatsapp", "email"],
                created=created,
            ),
            _profile(
                "emp-2",
                "Jane Smith",
                role="manager",
                email="jane.smith@example.com",
                phone="+255723456789",
                department="Finance",
                channels=["whatsapp"],
                created=created,
            ),
            _profile(
                "emp-3",
                "Alice Johnson",
                role="employee",
                email=None,
                phone="+255734567890",
                department="Operations",
                channels=["whatsapp"],
                created=created,
            ),
        ]
    )

    john_pin = hash_pin(DEMO_EMPLOYEE_PINS["+255712345678"], rounds=hash_rounds)
    jane_pin = hash_pin(DEMO_EMPLOYEE_PINS["+255723456789"], rounds=hash_rounds)
    ds.pins.extend(
        [
            _pin(DEMO_ADMIN_ID, hash_pin("0000", rounds=hash_rounds), created),
            _pin("emp-1", john_pin, created),
            _pin("emp-2", jane_pin, created),
            # Pending WhatsApp onboarding: the row exists, the PIN does not.
            _pin("emp-3", None, created),
        ]
    )

    for idx, name in enumerate(("Human Resources", "Finance", "Operations", "IT"), start=1):
        ds.departments.append(
            {
                "id": f"dept-{idx}",
                "name": name,
                "company_id": DEMO_COMPANY_ID,
                "created_at": created,
                "updated_at": created,
            }
        )

    ds.communications.extend(
        [
            {
                "id": "comm-1",
                "employee_id": "emp-1",
                "channel": "whatsapp",
                "type": "leave_request",
                "content": json.dumps(
                    {
                        "startDate": _ts(now + 7 * day),
                        "endDate": _ts(now + 10 * day),
                        "reason": "vacation",
                    }
                ),
                "status": "pending",
                "created_at": created,
                "updated_at": created,
            },
            {
                "id": "comm-2",
                "employee_id": "emp-1",
                "channel": "whatsapp",
                "type": "payment_advance",
                "content": json.dumps({"amount": "5000", "reason": "Medical expenses"}),
                "status": "approved",
                "created_at": _ts(now - 5 * day),
                "updated_at": _ts(now - 3 * day),
            },
            {
                "id": "comm-3",
                "employee_id": "emp-1",
                "channel": "whatsapp",
                "type": "complaint",
                "content": (
                    "I would like to report an issue with the office facilities. The air "
                    "conditioning in the east wing has been broken for two weeks now."
                ),
                "status": "completed",
                "created_at": _ts(now - 20 * day),
                "updated_at": _ts(now - 15 * day),
            },
        ]
    )

    ds.auth_users[DEMO_ADMIN_EMAIL] = {
        "id": DEMO_ADMIN_ID,
        "password_hash": hash_secret(DEMO_ADMIN_PASSWORD, rounds=hash_rounds),
    }
    return ds


def _profile(
    profile_id: str,
    full_name: str,
    *,
    role: str,
    email: str | None,
    phone: str | None,
    department: str,
    channels: list[str],
    created: str,
) -> Row:
    return {
        "id": profile_id,
        "company_id": DEMO_COMPANY_ID,
        "role": role,
        "full_name": full_name,
        "phone_number": phone,
        "email": email,
        "communication_channels": channels,
        "profile_image_url": None,
        "id_card_url": None,
        "department": department,
        "created_at": created,
        "updated_at": created,
    }


def _pin(profile_id: str, pin_hash: str | None, created: str) -> Row:
    return {
        "id": f"pin-{profile_id}",
        "profile_id": profile_id,
        "pin_hash": pin_hash,
        "pin_set": pin_hash is not None,
        "created_at": created,
        "updated_at": created,
    }

"""
imani_session.api.routers.companies

Self-service company registration: creates the tenant and its first HR admin,
then signs the admin in.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED

from imani_session.api.deps import open_session_store
from imani_session.services.registration import CompanyRegistration
from imani_session.services.session_store import SessionStore

router = APIRouter(prefix="/v1/companies", tags=["companies"])


class RegisterCompanyRequest(BaseModel):
    company_name: str
    company_code: str
    admin_full_name: str
    admin_email: str
    admin_password: str = Field(repr=False)
    admin_phone_number: str = ""
    dial_code: str | None = None


@router.post("/register", status_code=HTTP_201_CREATED)
async def register_company(
    body: RegisterCompanyRequest, store: SessionStore = Depends(open_session_store)
) -> dict[str, Any]:
    await store.register_company(CompanyRegistration(**body.model_dump()))
    return store.state.as_dict()

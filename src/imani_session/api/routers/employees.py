"""
imani_session.api.routers.employees

Employee directory and departments of the signed-in actor's company.
Role checks live in `EmployeeDirectory`; denials surface as 403 through the
API error handlers.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from starlette.status import HTTP_201_CREATED

from imani_session.api.deps import employee_directory
from imani_session.domain.models import CommunicationChannel, Role
from imani_session.services.employees import EmployeeDirectory

router = APIRouter(prefix="/v1", tags=["employees"])


class AddEmployeeRequest(BaseModel):
    full_name: str
    phone_number: str
    dial_code: str | None = None
    email: str | None = None
    role: Role = Role.employee
    department: str | None = None
    communication_channels: list[CommunicationChannel] | None = None


class CreateDepartmentRequest(BaseModel):
    name: str


@router.get("/employees")
async def list_employees(
    directory: EmployeeDirectory = Depends(employee_directory),
) -> list[dict[str, Any]]:
    return [e.model_dump(mode="json") for e in await directory.list_employees()]


@router.post("/employees", status_code=HTTP_201_CREATED)
async def add_employee(
    body: AddEmployeeRequest, directory: EmployeeDirectory = Depends(employee_directory)
) -> dict[str, Any]:
    created = await directory.add_employee(**body.model_dump())
    return created.model_dump(mode="json")


@router.get("/departments")
async def list_departments(
    directory: EmployeeDirectory = Depends(employee_directory),
) -> list[dict[str, Any]]:
    return [d.model_dump(mode="json") for d in await directory.list_departments()]


@router.post("/departments", status_code=HTTP_201_CREATED)
async def create_department(
    body: CreateDepartmentRequest, directory: EmployeeDirectory = Depends(employee_directory)
) -> dict[str, Any]:
    return (await directory.create_department(body.name)).model_dump(mode="json")

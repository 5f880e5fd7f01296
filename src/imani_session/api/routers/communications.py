"""
imani_session.api.routers.communications

Employee communications (leave requests, complaints, queries, notices, advances).
Any signed-in actor may read and submit; status changes need a reviewer role.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from starlette.status import HTTP_201_CREATED

from imani_session.api.deps import communications_service, current_actor, require_roles
from imani_session.domain.models import (
    Actor,
    CommunicationChannel,
    CommunicationStatus,
    CommunicationType,
    Role,
)
from imani_session.services.communications import CommunicationsService

router = APIRouter(prefix="/v1/communications", tags=["communications"])


class CreateCommunicationRequest(BaseModel):
    # Defaults to the signed-in actor (an employee filing their own request).
    employee_id: str | None = None
    channel: CommunicationChannel
    type: CommunicationType
    content: str


class StatusUpdateRequest(BaseModel):
    status: CommunicationStatus


@router.get("", dependencies=[Depends(current_actor)])
async def list_communications(
    svc: CommunicationsService = Depends(communications_service),
) -> list[dict[str, Any]]:
    return [c.model_dump(mode="json") for c in await svc.fetch_communications()]


@router.post("", status_code=HTTP_201_CREATED)
async def create_communication(
    body: CreateCommunicationRequest,
    actor: Actor = Depends(current_actor),
    svc: CommunicationsService = Depends(communications_service),
) -> dict[str, Any]:
    created = await svc.create_communication(
        employee_id=body.employee_id or actor.id,
        channel=body.channel,
        type=body.type,
        content=body.content,
    )
    return created.model_dump(mode="json")


@router.patch(
    "/{communication_id}/status",
    dependencies=[Depends(require_roles(Role.hr_admin, Role.manager))],
)
async def update_status(
    communication_id: str,
    body: StatusUpdateRequest,
    svc: CommunicationsService = Depends(communications_service),
) -> dict[str, Any]:
    updated = await svc.update_communication_status(communication_id, body.status)
    return updated.model_dump(mode="json")

"""
imani_session.api.routers.session

Session endpoints: sign-in (password and PIN), PIN setup, profile edits,
sign-out and the explicit demo switch. Every endpoint answers with the session
state snapshot as it stands after the operation.

Sign-in style routes open a client session when the caller has none and return
its token in the `x-session-token` header; every other route requires that token
as `Authorization: Bearer <token>`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from imani_session.api.deps import open_session_store, session_store
from imani_session.domain.models import CommunicationChannel
from imani_session.services.session_store import SessionStore

router = APIRouter(prefix="/v1/session", tags=["session"])


class PasswordSignInRequest(BaseModel):
    email: str
    password: str = Field(repr=False)


class PinRequest(BaseModel):
    phone_number: str
    pin: str = Field(repr=False)
    dial_code: str | None = None


class PhoneStatusRequest(BaseModel):
    phone_number: str
    dial_code: str | None = None


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    department: str | None = None
    communication_channels: list[CommunicationChannel] | None = Field(default=None, min_length=1)


@router.get("")
async def get_state(store: SessionStore = Depends(session_store)) -> dict[str, Any]:
    return store.state.as_dict()


@router.post("/initialize")
async def initialize(store: SessionStore = Depends(open_session_store)) -> dict[str, Any]:
    return (await store.initialize()).as_dict()


@router.post("/sign-in")
async def sign_in(
    body: PasswordSignInRequest, store: SessionStore = Depends(open_session_store)
) -> dict[str, Any]:
    await store.sign_in(body.email, body.password)
    return store.state.as_dict()


@router.post("/sign-in/pin")
async def sign_in_with_pin(
    body: PinRequest, store: SessionStore = Depends(open_session_store)
) -> dict[str, Any]:
    await store.sign_in_with_pin(body.phone_number, body.pin, dial_code=body.dial_code)
    return store.state.as_dict()


@router.post("/pin")
async def setup_pin(
    body: PinRequest, store: SessionStore = Depends(open_session_store)
) -> dict[str, str]:
    await store.setup_pin(body.phone_number, body.pin, dial_code=body.dial_code)
    return {"status": "pin_set"}


@router.post("/phone-status")
async def phone_status(
    body: PhoneStatusRequest, store: SessionStore = Depends(open_session_store)
) -> dict[str, bool]:
    status = await store.check_phone_number(body.phone_number, dial_code=body.dial_code)
    return {"is_registered": status.is_registered, "is_pin_set": status.is_pin_set}


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdateRequest, store: SessionStore = Depends(session_store)
) -> dict[str, Any]:
    await store.update_profile(body.model_dump(mode="json", exclude_unset=True))
    return store.state.as_dict()


@router.post("/sign-out")
async def sign_out(store: SessionStore = Depends(session_store)) -> dict[str, Any]:
    return (await store.sign_out()).as_dict()


@router.post("/demo")
async def enter_demo(store: SessionStore = Depends(open_session_store)) -> dict[str, Any]:
    return (await store.enter_demo_mode()).as_dict()

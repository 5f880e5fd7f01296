"""
imani_session.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness check (`/healthz`).
- Provide readiness check (`/readyz`) with flag-store connectivity validation and the
  live client session count.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from imani_session.api.deps import db_session, session_registry
from imani_session.services.sessions import SessionRegistry

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    session: AsyncSession = Depends(db_session),
    registry: SessionRegistry = Depends(session_registry),
) -> dict[str, str | int]:
    # The hosted backend is not checked: demo mode covers its outages.
    await session.execute(text("SELECT 1"))
    return {"status": "ready", "client_sessions": len(registry)}

"""
imani_session.services.communications

Communications service (leave requests, complaints, queries, notices, advances).

Responsibilities:
- Fetch, create and update communications through the active backend.
- Degrade to the demo dataset when the hosted backend is unusable.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace

from imani_session.domain.errors import ValidationError
from imani_session.domain.models import (
    Communication,
    CommunicationChannel,
    CommunicationStatus,
    CommunicationType,
)
from imani_session.observability.logging import get_logger
from imani_session.services.fallback import FallbackController

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CommunicationsState:
    communications: tuple[Communication, ...] = field(default_factory=tuple)
    is_loading: bool = False
    last_error: str | None = None


class CommunicationsService:
    def __init__(self, *, fallback: FallbackController) -> None:
        self._fallback = fallback
        self._state = CommunicationsState()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CommunicationsState:
        return self._state

    @property
    def demo_mode(self) -> bool:
        return self._fallback.demo_active

    async def fetch_communications(self) -> list[Communication]:
        """Newest first."""

        async with self._lock:
            return await self._fetch()

    async def create_communication(
        self,
        *,
        employee_id: str,
        channel: CommunicationChannel | str,
        type: CommunicationType | str,
        content: str,
    ) -> Communication:
        if not content.strip():
            raise ValidationError("Communication content is required")
        row = {
            "employee_id": employee_id,
            "channel": CommunicationChannel(channel).value,
            "type": CommunicationType(type).value,
            "content": content,
            # New requests always start pending, whatever the caller sent.
            "status": CommunicationStatus.pending.value,
        }
        async with self._lock:
            self._state = replace(self._state, is_loading=True, last_error=None)
            try:
                created = Communication.model_validate(
                    await self._fallback.run(
                        lambda b: b.insert_communication(row), operation="create_communication"
                    )
                )
                log.info("communication.created", id=created.id, type=created.type.value)
                await self._fetch()
                return created
            except Exception as e:
                self._state = replace(self._state, last_error=str(e))
                raise
            finally:
                self._state = replace(self._state, is_loading=False)

    async def update_communication_status(
        self, communication_id: str, status: CommunicationStatus | str
    ) -> Communication:
        fields = {"status": CommunicationStatus(status).value}
        async with self._lock:
            self._state = replace(self._state, is_loading=True, last_error=None)
            try:
                updated = Communication.model_validate(
                    await self._fallback.run(
                        lambda b: b.update_communication(communication_id, fields),
                        operation="update_communication_status",
                    )
                )
                log.info("communication.status", id=updated.id, status=updated.status.value)
                await self._fetch()
                return updated
            except Exception as e:
                self._state = replace(self._state, last_error=str(e))
                raise
            finally:
                self._state = replace(self._state, is_loading=False)

    async def _fetch(self) -> list[Communication]:
        self._state = replace(self._state, is_loading=True, last_error=None)
        try:
            rows = await self._fallback.run(
                lambda b: b.list_communications(), operation="fetch_communications"
            )
            items = [Communication.model_validate(r) for r in rows]
            self._state = replace(self._state, communications=tuple(items))
            return items
        except Exception as e:
            self._state = replace(self._state, last_error=str(e))
            raise
        finally:
            self._state = replace(self._state, is_loading=False)

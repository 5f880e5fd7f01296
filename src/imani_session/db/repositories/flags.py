from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from imani_session.db.models import DurableFlag


class FlagRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, key: str) -> str | None:
        flag = await self._session.get(DurableFlag, key)
        return flag.value if flag is not None else None

    async def put(self, key: str, value: str) -> DurableFlag:
        flag = await self._session.get(DurableFlag, key)
        if flag is not None:
            flag.value = value
            flag.updated_at = datetime.now(tz=UTC).replace(tzinfo=None)
            await self._session.flush()
            return flag

        flag = DurableFlag(key=key, value=value)
        self._session.add(flag)
        await self._session.flush()
        return flag

    async def delete(self, key: str) -> bool:
        flag = await self._session.get(DurableFlag, key)
        if flag is None:
            return False
        await self._session.delete(flag)
        await self._session.flush()
        return True

"""
imani_session.services.flags

Durable flag storage.

Responsibilities:
- Read/write boolean flags that survive restarts (used solely for `demoMode`).
- Own the transaction boundary around `FlagRepo`.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from imani_session.db.repositories.flags import FlagRepo

_TRUE = "true"


class FlagStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_bool(self, key: str) -> bool:
        async with self._session_factory() as session:
            return (await FlagRepo(session).get(key)) == _TRUE

    async def set_bool(self, key: str, value: bool) -> None:
        async with self._session_factory() as session:
            repo = FlagRepo(session)
            if value:
                await repo.put(key, _TRUE)
            else:
                # An absent flag reads as false; don't keep "false" rows around.
                await repo.delete(key)
            await session.commit()

    async def clear(self, key: str) -> None:
        await self.set_bool(key, False)

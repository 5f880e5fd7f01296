"""
imani_session.db.session

Engine, session factory and schema bootstrap for the durable flag database.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from imani_session.db import models  # noqa: F401  # registers tables on Base.metadata
from imani_session.db.base import Base
from imani_session.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    url = make_url(settings.database_url)
    kwargs: dict[str, Any] = {}
    if url.get_backend_name() == "sqlite":
        # Several processes may share one flag file; wait on its write lock.
        kwargs["connect_args"] = {"timeout": 15}
    else:
        kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **kwargs)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


async def create_schema(engine: AsyncEngine) -> None:
    """
    Dev/test bootstrap: create the flag table if missing.
    Production databases are migrated with Alembic instead.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

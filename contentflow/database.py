from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def normalize_url(raw_url: str) -> str:
    if raw_url.startswith("postgresql+psycopg"):
        # if someone provided a sync URL by mistake, upgrade it to async
        return raw_url.replace("postgresql+psycopg2", "postgresql+asyncpg").replace(
            "postgresql+psycopg", "postgresql+asyncpg"
        )
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw_url


class Database:
    """Owns the async engine and session factory for one process.

    Built once at startup and carried on ``app.state``; ``dispose()`` must be
    awaited at shutdown to release pooled connections.
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = normalize_url(url)
        engine_kwargs = {"echo": echo, "future": True}
        if self.url.startswith("sqlite") and ":memory:" in self.url:
            # a single shared connection, otherwise every session sees an empty db
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        self.engine = create_async_engine(self.url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_maker() as session:
            yield session

    async def create_all(self) -> None:
        # Only for dev/tests, never in prod with Alembic
        from . import models  # noqa: F401  registers every table on Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request):
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session

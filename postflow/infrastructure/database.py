# postflow/infrastructure/database.py
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# table modules must be imported so SQLModel.metadata knows every table
from ..UAA import models as _account_models  # noqa: F401
from ..models import post as _post_models  # noqa: F401
from ..models import billing as _billing_models  # noqa: F401
from ..models import backoffice as _backoffice_models  # noqa: F401

logger = structlog.get_logger(__name__)


def _normalize_url(url: str) -> str:
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class Database:
    """
    Owns the async engine and session factory for the lifetime of the process.
    Created by the application factory and disposed on shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = _normalize_url(url)
        kwargs = {"echo": echo}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.url:
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True

        self.engine: AsyncEngine = create_async_engine(self.url, **kwargs)
        if self.url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        """Local development only; deployments run the Alembic migrations."""
        async with self.engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)
        logger.info("db_tables_created", url=self.engine.url.render_as_string(hide_password=True))

    async def drop_all(self) -> None:
        async with self.engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("db_engine_disposed")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

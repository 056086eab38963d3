# postflow/dependencies/db.py
from typing import AsyncGenerator
from fastapi import Request
from sqlmodel.ext.asyncio.session import AsyncSession


async def get_session_dep(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.database.session() as session:
        yield session

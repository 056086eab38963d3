# postflow/UAA/repository.py
from sqlalchemy import delete, func, update
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
from .models import LoginLog, PasswordReset, User
from typing import Optional
import uuid
from datetime import datetime

from ..models.base import utcnow


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        q = select(User).where(func.lower(User.email) == email.strip().lower())
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        q = select(User).where(User.id == user_id).execution_options(populate_existing=True)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def create(self, user: User) -> User:
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def record_login(self, user: User, ip_address: Optional[str], user_agent: Optional[str]) -> None:
        """Login event plus counter bump in one commit."""
        now = utcnow()
        try:
            self.session.add(LoginLog(user_id=user.id, login_time=now, ip_address=ip_address, user_agent=user_agent))
            await self.session.execute(
                update(User)
                .where(User.id == user.id)
                .values(login_count=User.login_count + 1, last_login=now, updated_at=now)
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def update_password(self, user: User, hashed_password: str):
        user.hashed_password = hashed_password
        user.updated_at = utcnow()
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    # password reset codes

    async def add_reset_code(self, email: str, token: str, expires_at: datetime) -> PasswordReset:
        row = PasswordReset(email=email, token=token, expires_at=expires_at)
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return row

    async def latest_reset_code(self, email: str) -> Optional[PasswordReset]:
        q = select(PasswordReset).where(PasswordReset.email == email).order_by(PasswordReset.id.desc()).limit(1)
        res = await self.session.execute(q)
        return res.scalars().first()

    async def delete_reset_code(self, reset_id: int) -> None:
        await self.session.execute(delete(PasswordReset).where(PasswordReset.id == reset_id))
        await self.session.commit()

# postflow/dependencies/auth.py
import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
import redis.asyncio as aioredis
from sqlmodel.ext.asyncio.session import AsyncSession

from ..config import Settings
from ..UAA.models import User
from ..UAA.repository import UserRepository
from ..UAA.utils import decode_token, is_access_jti_blacklisted
from ..services.errors import AuthenticationError, ForbiddenError
from .app_state import get_redis, get_settings
from .db import get_session_dep

bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
    redis: aioredis.Redis = Depends(get_redis),
) -> dict:
    """Verified, non-revoked access-token claims."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")
    try:
        payload = decode_token(credentials.credentials, settings.secret_key, settings.algorithm)
    except JWTError:
        raise AuthenticationError("Invalid or expired token")
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")
    jti = payload.get("jti")
    if jti and await is_access_jti_blacklisted(redis, jti):
        raise AuthenticationError("Token revoked")
    return payload


async def get_current_user(
    payload: dict = Depends(get_token_payload),
    session: AsyncSession = Depends(get_session_dep),
) -> User:
    if payload.get("admin"):
        raise AuthenticationError("User token required")
    repo = UserRepository(session)
    user = await repo.get_by_id(_parse_subject(payload.get("sub")))
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise ForbiddenError("Account disabled")
    return user


async def get_current_admin(payload: dict = Depends(get_token_payload)) -> dict:
    if not payload.get("admin"):
        raise ForbiddenError("Admin access required")
    return payload


def _parse_subject(sub) -> uuid.UUID:
    try:
        return uuid.UUID(str(sub))
    except ValueError:
        raise AuthenticationError("Invalid token subject")

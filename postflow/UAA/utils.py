# postflow/UAA/utils.py
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog
import redis.asyncio as aioredis
from passlib.context import CryptContext
from jose import jwt, JWTError

from ..services.errors import ValidationError

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# --- Password utilities ---
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError) as e:
        # malformed or unknown hash format stored for this account
        logger.warning("password_verify_failed", error=str(e))
        return False


def assert_password_policy(password: Optional[str]) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


# --- JWT helpers ---
def _now_ts() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def create_access_token(
    subject: str,
    secret_key: str,
    algorithm: str,
    expires_delta: timedelta,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    jti = str(uuid.uuid4())
    iat = _now_ts()
    exp = iat + int(expires_delta.total_seconds())
    payload = dict(extra_claims or {})
    payload.update({"sub": subject, "exp": exp, "jti": jti, "type": "access", "iat": iat})
    token = jwt.encode(payload, secret_key, algorithm=algorithm)
    logger.debug("create_access_token", sub=subject, jti=jti, exp=exp)
    return {"token": token, "jti": jti, "exp": exp}


def decode_token(token: str, secret_key: str, algorithm: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        logger.warning("token_decode_failed", error=str(e))
        raise


# --- Redis-based blacklist ---
async def blacklist_access_jti(redis: aioredis.Redis, jti: str, expires_at_ts: int) -> None:
    ttl = max(0, expires_at_ts - _now_ts())
    if ttl <= 0:
        return
    await redis.set(f"bl:{jti}", "1", ex=ttl)
    logger.info("access_jti_blacklisted", jti=jti, ttl=ttl)


async def is_access_jti_blacklisted(redis: aioredis.Redis, jti: str) -> bool:
    return await redis.exists(f"bl:{jti}") == 1


# --- Login lock-out ---
LOGIN_ATTEMPT_WINDOW_SECONDS = 300
MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_SECONDS = 300


async def is_login_locked(redis: aioredis.Redis, user_id: str) -> bool:
    return await redis.exists(f"la:lock:{user_id}") == 1


async def increment_login_attempts(redis: aioredis.Redis, user_id: str) -> int:
    key = f"la:attempts:{user_id}"
    attempts = await redis.incr(key)
    if attempts == 1:
        await redis.expire(key, LOGIN_ATTEMPT_WINDOW_SECONDS)
    if attempts >= MAX_LOGIN_ATTEMPTS:
        await redis.set(f"la:lock:{user_id}", "1", ex=LOCKOUT_SECONDS)
        logger.warning("user_locked_due_to_failed_logins", user_id=user_id)
    return attempts


async def reset_login_attempts(redis: aioredis.Redis, user_id: str) -> None:
    await redis.delete(f"la:attempts:{user_id}")
    await redis.delete(f"la:lock:{user_id}")


# --- Reset codes ---
RESET_CODE_LENGTH = 6
RESET_CODE_TTL = timedelta(minutes=10)


def generate_numeric_code(length: int = RESET_CODE_LENGTH) -> str:
    range_start = 10 ** (length - 1)
    range_end = (10 ** length) - 1
    return str(secrets.randbelow(range_end - range_start + 1) + range_start)

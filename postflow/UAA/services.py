# postflow/UAA/services.py
import secrets
from typing import Optional
from datetime import timedelta
import structlog
import redis.asyncio as aioredis

from ..config import Settings
from ..infrastructure.email import Mailer
from ..models.base import utcnow
from ..services.errors import AuthenticationError, ConflictError, ValidationError
from .models import User
from .repository import UserRepository
from .schemas import ResetPasswordRequest, SignupRequest
from . import utils

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_RESET_CODE = "Invalid or expired verification code"


class UserService:
    def __init__(self, repo: UserRepository, redis: aioredis.Redis, settings: Settings, mailer: Optional[Mailer] = None):
        self.repo = repo
        self.redis = redis
        self.settings = settings
        self.mailer = mailer

    async def register_user(self, user_in: SignupRequest) -> User:
        utils.assert_password_policy(user_in.password)
        email = user_in.email.lower()
        existing = await self.repo.get_by_email(email)
        if existing:
            logger.info("register_email_exists", email=email)
            raise ConflictError("User already exists with this email")

        hashed = utils.hash_password(user_in.password)
        user = User(full_name=user_in.full_name.strip(), email=email, hashed_password=hashed)
        created = await self.repo.create(user)
        logger.info("user_registered", user_id=str(created.id), email=created.email)
        return created

    async def authenticate_user(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> User:
        user = await self.repo.get_by_email(email)
        if not user:
            logger.info("auth_failed_unknown_email", email=email)
            raise AuthenticationError(INVALID_CREDENTIALS)

        uid, user_email = user.id, user.email
        user_id = str(uid)
        if await utils.is_login_locked(self.redis, user_id):
            logger.warning("auth_attempt_on_locked_user", user_id=user_id)
            raise AuthenticationError("Account temporarily locked due to failed login attempts")

        if not utils.verify_password(password, user.hashed_password):
            attempts = await utils.increment_login_attempts(self.redis, user_id)
            logger.info("auth_failed_wrong_password", user_id=user_id, attempts=attempts)
            raise AuthenticationError(INVALID_CREDENTIALS)

        await utils.reset_login_attempts(self.redis, user_id)
        try:
            await self.repo.record_login(user, ip_address, user_agent)
        except Exception as e:
            # bookkeeping only; the credentials were valid
            logger.exception("login_log_failed", user_id=user_id, error=str(e))
        logger.info("auth_success", user_id=user_id, email=user_email)
        return await self.repo.get_by_id(uid)

    def issue_token(self, user: User) -> dict:
        access = utils.create_access_token(
            str(user.id),
            secret_key=self.settings.secret_key,
            algorithm=self.settings.algorithm,
            expires_delta=timedelta(minutes=self.settings.access_token_expire_minutes),
            extra_claims={"email": user.email},
        )
        logger.info("token_issued", user_id=str(user.id), jti=access["jti"])
        return access

    async def logout(self, payload: dict) -> None:
        jti = payload.get("jti")
        exp = payload.get("exp")
        if jti and exp:
            await utils.blacklist_access_jti(self.redis, jti, exp)
            logger.info("access_blacklisted_on_logout", jti=jti, user_id=payload.get("sub"))

    async def request_password_reset(self, email: str) -> Optional[str]:
        """
        Stores and mails a fresh code. Returns the code, or None for an unknown
        address; callers answer both cases identically.
        """
        email = email.lower()
        user = await self.repo.get_by_email(email)
        if not user:
            logger.info("password_reset_unknown_email", email=email)
            return None

        code = utils.generate_numeric_code()
        await self.repo.add_reset_code(email, code, utcnow() + utils.RESET_CODE_TTL)
        logger.info("password_reset_code_created", user_id=str(user.id))

        if self.mailer is not None:
            minutes = int(utils.RESET_CODE_TTL.total_seconds() // 60)
            try:
                await self.mailer.send(
                    to_email=email,
                    subject="Your password reset code",
                    plain_text=f"Your password reset code is: {code}\nIt expires in {minutes} minutes.",
                    html=f"<p>Your password reset code is: <strong>{code}</strong></p>"
                    f"<p>It expires in {minutes} minutes.</p>",
                )
            except Exception as e:
                logger.exception("password_reset_email_failed", user_id=str(user.id), error=str(e))
        return code

    async def reset_password(self, req: ResetPasswordRequest) -> None:
        if req.new_password != req.confirm_password:
            raise ValidationError("Passwords do not match")
        utils.assert_password_policy(req.new_password)

        email = req.email.lower()
        latest = await self.repo.latest_reset_code(email)
        if latest is None or not secrets.compare_digest(latest.token, req.verification_code.strip()) or latest.expires_at < utcnow():
            logger.info("password_reset_code_rejected", email=email)
            raise ValidationError(INVALID_RESET_CODE)

        user = await self.repo.get_by_email(email)
        if not user:
            raise ValidationError(INVALID_RESET_CODE)

        await self.repo.update_password(user, utils.hash_password(req.new_password))
        await self.repo.delete_reset_code(latest.id)
        logger.info("password_reset_completed", user_id=str(user.id))

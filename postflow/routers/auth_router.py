# postflow/routers/auth_router.py
from fastapi import APIRouter, Depends, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession
import redis.asyncio as aioredis
import structlog

from ..config import Settings
from ..dependencies.app_state import get_mailer, get_redis, get_settings
from ..dependencies.auth import get_token_payload
from ..dependencies.db import get_session_dep
from ..infrastructure.email import Mailer
from ..UAA.repository import UserRepository
from ..UAA.services import UserService
from ..UAA.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    ResetPasswordRequest,
    SignupRequest,
    SignupResponse,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

RESET_SENT_MESSAGE = "If the email exists, a verification code was sent."


def get_user_service(
    session: AsyncSession = Depends(get_session_dep),
    redis: aioredis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
) -> UserService:
    return UserService(UserRepository(session), redis, settings, mailer)


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_in: SignupRequest, svc: UserService = Depends(get_user_service)):
    created = await svc.register_user(user_in)
    return {"message": "Signup successful! Please verify your email.", "user": created}


async def _login(form_data: LoginRequest, request: Request, svc: UserService) -> dict:
    user = await svc.authenticate_user(
        form_data.email,
        form_data.password,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    access = svc.issue_token(user)
    return {"message": "Login successful", "token": access["token"], "expires_at": access["exp"], "user": user}


@router.post("/login", response_model=LoginResponse)
async def login(form_data: LoginRequest, request: Request, svc: UserService = Depends(get_user_service)):
    return await _login(form_data, request, svc)


@router.post("/signin", response_model=LoginResponse)
async def signin(form_data: LoginRequest, request: Request, svc: UserService = Depends(get_user_service)):
    return await _login(form_data, request, svc)


@router.post("/logout")
async def logout(payload: dict = Depends(get_token_payload), svc: UserService = Depends(get_user_service)):
    """Revokes the presented bearer token until it would have expired anyway."""
    await svc.logout(payload)
    return {"message": "Logged out"}


@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    svc: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    code = await svc.request_password_reset(body.email)
    response = {"message": RESET_SENT_MESSAGE}
    # without SMTP the code would be unreachable, so development hands it back
    if code and (settings.return_reset_code or (settings.is_development and not mailer.enabled)):
        response["verification_code"] = code
    return response


@router.post("/reset-password")
async def reset_password(body: ResetPasswordRequest, svc: UserService = Depends(get_user_service)):
    await svc.reset_password(body)
    return {"message": "Password reset successfully"}

# postflow/routers/admin_router.py
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from ..config import Settings
from ..dependencies.app_state import get_settings
from ..dependencies.auth import get_current_admin
from ..dependencies.db import get_session_dep
from ..infrastructure.backoffice_repo import AdminRepository
from ..schemas.backoffice_schema import (
    AdminLoginRequest,
    AdminLoginResponse,
    MetricsRead,
    UserList,
    WebsiteList,
    WorkflowList,
)
from ..services.errors import AuthenticationError
from ..UAA import utils

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=AdminLoginResponse)
async def admin_login(body: AdminLoginRequest, settings: Settings = Depends(get_settings)):
    """The single back-office account lives in the environment, not in the users table."""
    email = body.email.strip().lower()
    email_ok = secrets.compare_digest(email.encode(), settings.admin_email.encode())
    password_ok = secrets.compare_digest(body.password.encode(), settings.admin_password.encode())
    if not (email_ok and password_ok):
        logger.info("admin_login_failed", email=email)
        raise AuthenticationError("Invalid email or password")

    access = utils.create_access_token(
        settings.admin_email,
        secret_key=settings.secret_key,
        algorithm=settings.algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        extra_claims={"admin": True, "email": settings.admin_email},
    )
    logger.info("admin_login_ok", jti=access["jti"])
    return {"message": "Admin login successful", "token": access["token"], "admin": {"email": settings.admin_email}}


@router.get("/metrics", response_model=MetricsRead)
async def metrics(session: AsyncSession = Depends(get_session_dep), admin: dict = Depends(get_current_admin)):
    return await AdminRepository(session).metrics()


@router.get("/users", response_model=UserList)
async def list_users(session: AsyncSession = Depends(get_session_dep), admin: dict = Depends(get_current_admin)):
    users = await AdminRepository(session).list_users()
    return {"users": users, "total": len(users)}


@router.get("/workflows", response_model=WorkflowList)
async def list_workflows(session: AsyncSession = Depends(get_session_dep), admin: dict = Depends(get_current_admin)):
    workflows = await AdminRepository(session).list_workflows()
    return {"workflows": workflows, "total": len(workflows)}


@router.get("/websites", response_model=WebsiteList)
async def list_websites(session: AsyncSession = Depends(get_session_dep), admin: dict = Depends(get_current_admin)):
    websites = await AdminRepository(session).list_websites()
    return {"websites": websites, "total": len(websites)}

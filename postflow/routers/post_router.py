# postflow/routers/post_router.py
import secrets
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, Query, UploadFile, status
from sqlmodel.ext.asyncio.session import AsyncSession

from ..config import Settings
from ..dependencies.app_state import get_gateway, get_settings
from ..dependencies.auth import get_current_user
from ..dependencies.db import get_session_dep
from ..infrastructure.automation_gateway import AutomationGateway
from ..infrastructure.media_storage import MediaStorage
from ..schemas.post_schema import PostDetail, PostEnvelope, PostSummary, ReviewRequest, WebhookStatusUpdate
from ..services.errors import AuthenticationError
from ..services.post_service import PostService
from ..UAA.models import User

router = APIRouter(prefix="/posts", tags=["posts"])


def get_post_service(
    session: AsyncSession = Depends(get_session_dep),
    gateway: AutomationGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> PostService:
    return PostService(session, gateway, MediaStorage(settings.uploads_dir))


@router.post("", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
async def create_post(
    caption: Optional[str] = Form(None),
    platforms: Optional[str] = Form(None),
    posting_mode: Optional[str] = Form(None, alias="postingMode"),
    scheduled_at: Optional[str] = Form(None, alias="scheduledAt"),
    media: Optional[List[UploadFile]] = File(None),
    svc: PostService = Depends(get_post_service),
    current_user: User = Depends(get_current_user),
):
    post = await svc.create_post(
        owner_id=current_user.id,
        caption=caption,
        platforms=platforms,
        posting_mode=posting_mode,
        scheduled_at=scheduled_at,
        media=media,
    )
    return {"message": "Post created successfully", "post": post}


@router.get("", response_model=List[PostSummary])
async def list_posts(
    status_filter: Optional[str] = Query(None, alias="status"),
    platform: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    svc: PostService = Depends(get_post_service),
    current_user: User = Depends(get_current_user),
):
    return await svc.list_posts(current_user.id, status=status_filter, platform=platform, limit=limit, offset=offset)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: uuid.UUID,
    svc: PostService = Depends(get_post_service),
    current_user: User = Depends(get_current_user),
):
    return await svc.get_post_detail(post_id, current_user.id)


@router.post("/{post_id}/approve", response_model=PostEnvelope)
async def approve_post(
    post_id: uuid.UUID,
    payload: Optional[ReviewRequest] = None,
    svc: PostService = Depends(get_post_service),
    current_user: User = Depends(get_current_user),
):
    post = await svc.approve(post_id, current_user.id, comment=payload.comment if payload else None)
    return {"message": "Post approved successfully", "post": post}


@router.post("/{post_id}/reject", response_model=PostEnvelope)
async def reject_post(
    post_id: uuid.UUID,
    payload: Optional[ReviewRequest] = None,
    svc: PostService = Depends(get_post_service),
    current_user: User = Depends(get_current_user),
):
    post = await svc.reject(post_id, current_user.id, comment=payload.comment if payload else None)
    return {"message": "Post rejected", "post": post}


@router.post("/{post_id}/webhook-status", response_model=dict)
async def webhook_status(
    post_id: uuid.UUID,
    payload: WebhookStatusUpdate,
    webhook_secret: Optional[str] = Header(None, alias="X-Webhook-Secret"),
    svc: PostService = Depends(get_post_service),
    settings: Settings = Depends(get_settings),
):
    """Called by the automation engine; no user token, optionally a shared secret."""
    expected = settings.n8n_webhook_secret
    if expected and not secrets.compare_digest((webhook_secret or "").encode(), expected.encode()):
        raise AuthenticationError("Invalid webhook secret")
    await svc.apply_webhook(post_id, payload)
    return {"message": "Post status updated successfully"}

# postflow/services/post_service.py
import json
import uuid
from datetime import datetime
from typing import List, Optional, Union

import structlog
from fastapi import UploadFile
from sqlmodel.ext.asyncio.session import AsyncSession

from ..infrastructure.automation_gateway import AutomationGateway
from ..infrastructure.media_storage import MediaStorage
from ..infrastructure.posts_repo import PostRepository
from ..models.base import as_utc, utcnow
from ..models.post import ApprovalAction, Platform, Post, PostingMode, PostStatus
from ..schemas.post_schema import PostDetail, PostSummary, WebhookStatusUpdate
from . import post_state
from .errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

PLATFORM_VALUES = [p.value for p in Platform]


def parse_platforms(raw: Union[str, List[str], None]) -> List[str]:
    """Accepts a JSON array (as sent in multipart forms) or an already-parsed list."""
    try:
        platforms = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        raise ValidationError("Invalid platforms format. Must be a JSON array.")
    if not isinstance(platforms, list) or not platforms:
        raise ValidationError("Invalid platforms format. Must be a JSON array.")
    unknown = [p for p in platforms if p not in PLATFORM_VALUES]
    if unknown:
        raise ValidationError(f"Unsupported platforms: {unknown}. Allowed: {', '.join(PLATFORM_VALUES)}")
    return platforms


def parse_mode(raw: Optional[str]) -> PostingMode:
    try:
        return PostingMode(raw)
    except ValueError:
        raise ValidationError("postingMode must be 'automatic' or 'approval'")


def parse_scheduled_at(raw: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """ISO-8601 to aware UTC (offset-less input is taken as UTC); must be strictly in the future."""
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError("Invalid scheduledAt date format")
    parsed = as_utc(parsed)
    if parsed <= as_utc(now or utcnow()):
        raise ValidationError("scheduledAt must be in the future")
    return parsed


class PostService:
    """
    Post lifecycle orchestration: validate, persist, then hand off to the
    automation engine. Dispatch always happens after the database commit and a
    failed dispatch marks the post failed instead of undoing it.
    """

    def __init__(self, session: AsyncSession, gateway: AutomationGateway, storage: MediaStorage):
        self.repo = PostRepository(session)
        self.gateway = gateway
        self.storage = storage

    async def create_post(
        self,
        owner_id: uuid.UUID,
        caption: Optional[str],
        platforms: Union[str, List[str], None],
        posting_mode: Optional[str],
        scheduled_at: Optional[str] = None,
        media: Optional[List[UploadFile]] = None,
    ) -> PostDetail:
        if not caption or not platforms or not posting_mode:
            raise ValidationError("Missing required fields: caption, platforms, postingMode")

        platform_list = parse_platforms(platforms)
        mode = parse_mode(posting_mode)
        when = parse_scheduled_at(scheduled_at)
        uploads = [f for f in (media or []) if f.filename]
        self.storage.validate(uploads)

        stored = await self.storage.save_all(uploads)
        status = post_state.initial_status(mode, when)
        try:
            post = await self.repo.create_post(
                owner_id=owner_id,
                caption=caption,
                platforms=platform_list,
                mode=mode.value,
                status=status.value,
                scheduled_at=when,
                media=stored,
            )
        except Exception:
            self.storage.remove([m.file_path for m in stored])
            logger.exception("post_create_failed", user_id=str(owner_id))
            raise

        logger.info(
            "post_created",
            post_id=str(post.id),
            user_id=str(owner_id),
            status=status.value,
            platforms=platform_list,
            media_count=len(stored),
        )
        if post_state.should_dispatch(status):
            await self._dispatch(post)
        return await self.repo.get_detail(post.id)

    async def _dispatch(self, post: Post) -> None:
        platforms = [p.platform for p in await self.repo.list_platforms(post.id)]
        media = await self.repo.list_media(post.id)
        try:
            ack = await self.gateway.trigger_publish(post, platforms, media)
        except Exception as exc:
            reason = getattr(exc, "detail", None) or str(exc)
            logger.warning("post_dispatch_failed", post_id=str(post.id), error=reason)
            await self.repo.update_status(
                post.id, PostStatus.failed.value, error_message=f"n8n webhook failed: {reason}"
            )
            return

        ids = {}
        if ack.get("executionId"):
            ids["n8n_execution_id"] = str(ack["executionId"])
        if ack.get("workflowId"):
            ids["n8n_workflow_id"] = str(ack["workflowId"])
        if ids:
            await self.repo.update_status(post.id, None, **ids)

    async def _get_owned(self, post_id: uuid.UUID, caller_id: uuid.UUID) -> Post:
        post = await self.repo.get_by_id(post_id)
        if not post:
            raise NotFoundError("Post not found")
        if post.user_id != caller_id:
            logger.info("post_access_denied", post_id=str(post_id), user_id=str(caller_id))
            raise ForbiddenError("Access denied")
        return post

    async def get_post_detail(self, post_id: uuid.UUID, caller_id: uuid.UUID) -> PostDetail:
        await self._get_owned(post_id, caller_id)
        return await self.repo.get_detail(post_id)

    async def list_posts(
        self,
        owner_id: uuid.UUID,
        status: Optional[str] = None,
        platform: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[PostSummary]:
        return await self.repo.list_for_owner(owner_id, status=status, platform=platform, limit=limit, offset=offset)

    async def approve(self, post_id: uuid.UUID, caller_id: uuid.UUID, comment: Optional[str] = None) -> PostDetail:
        post = await self._get_owned(post_id, caller_id)
        post_state.ensure_pending_approval(post.status, "approved")

        new_status = post_state.status_after_approval(post.scheduled_at)
        await self._review(post_id, caller_id, new_status, ApprovalAction.approved, comment)
        logger.info("post_approved", post_id=str(post_id), user_id=str(caller_id), status=new_status.value)

        await self._dispatch(await self.repo.get_by_id(post_id))
        return await self.repo.get_detail(post_id)

    async def reject(self, post_id: uuid.UUID, caller_id: uuid.UUID, comment: Optional[str] = None) -> PostDetail:
        post = await self._get_owned(post_id, caller_id)
        post_state.ensure_pending_approval(post.status, "rejected")

        await self._review(post_id, caller_id, PostStatus.rejected, ApprovalAction.rejected, comment)
        logger.info("post_rejected", post_id=str(post_id), user_id=str(caller_id))
        return await self.repo.get_detail(post_id)

    async def _review(
        self,
        post_id: uuid.UUID,
        caller_id: uuid.UUID,
        new_status: PostStatus,
        action: ApprovalAction,
        comment: Optional[str],
    ) -> None:
        changed = await self.repo.record_review(
            post_id,
            expected_status=PostStatus.pending_approval.value,
            new_status=new_status.value,
            approver_id=caller_id,
            action=action.value,
            comment=comment or None,
        )
        if not changed:
            # another request reviewed the post between our read and our write
            current = await self.repo.get_by_id(post_id)
            raise InvalidStateError(f"Post cannot be {action.value}. Current status: {current.status}")

    async def apply_webhook(self, post_id: uuid.UUID, update: WebhookStatusUpdate) -> None:
        post = await self.repo.get_by_id(post_id)
        if not post:
            raise NotFoundError("Post not found")
        if update.status is not None:
            post_state.ensure_webhook_transition(post.status, update.status)

        fields = {}
        if update.error_message:
            fields["error_message"] = update.error_message
        if update.n8n_execution_id:
            fields["n8n_execution_id"] = update.n8n_execution_id
        new_status = update.status.value if update.status else None
        if new_status == PostStatus.posted.value:
            fields["posted_at"] = utcnow()

        platform_results = [
            {"platform": p.platform, "status": p.status, "external_id": p.platform_post_id, "error": p.error}
            for p in (update.platform_statuses or [])
        ]

        if new_status and post_state.is_terminal(post.status):
            logger.info("webhook_overrides_terminal_status", post_id=str(post_id), old=post.status, new=new_status)
        await self.repo.apply_result(post.id, new_status, fields, platform_results)
        logger.info(
            "post_webhook_applied",
            post_id=str(post_id),
            status=new_status,
            platforms=[r["platform"] for r in platform_results],
        )

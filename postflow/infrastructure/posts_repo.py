# postflow/infrastructure/posts_repo.py
from typing import Dict, List, Optional, Sequence
import uuid
from datetime import datetime

from sqlalchemy import distinct, func, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models.base import utcnow
from ..models.post import MediaFile, Post, PostApproval, PostPlatform
from ..schemas.post_schema import (
    ApprovalRead,
    MediaFileRead,
    PlatformStatusRead,
    PlatformTargetRead,
    PostDetail,
    PostSummary,
)
from ..UAA.models import User
from .media_storage import StoredMedia

# post columns a status update may touch besides status itself
UPDATABLE_FIELDS = ("error_message", "posted_at", "n8n_workflow_id", "n8n_execution_id")


def media_path_url(file_name: str) -> str:
    return f"/uploads/media/{file_name}"


class PostRepository:
    """
    Repository for posts and the rows they own (platform targets, media, approvals).
    All methods are async and expect an AsyncSession to be injected from the outside.
    Every public write commits exactly once, so multi-row writes are atomic.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_post(
        self,
        owner_id: uuid.UUID,
        caption: str,
        platforms: Sequence[str],
        mode: str,
        status: str,
        scheduled_at: Optional[datetime] = None,
        media: Sequence[StoredMedia] = (),
    ) -> Post:
        """
        Insert the post, one target per distinct platform and one row per stored
        media file. Rolls back everything if any insert fails.
        """
        post = Post(
            user_id=owner_id,
            caption=caption,
            posting_mode=mode,
            status=status,
            scheduled_at=scheduled_at,
        )
        try:
            self.session.add(post)
            await self.session.flush()

            for platform in dict.fromkeys(platforms):
                self.session.add(PostPlatform(post_id=post.id, platform=platform))

            for m in media:
                self.session.add(
                    MediaFile(
                        post_id=post.id,
                        file_name=m.file_name,
                        file_path=m.file_path,
                        file_type=m.file_type,
                        file_size=m.file_size,
                        mime_type=m.mime_type,
                    )
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return post

    async def get_by_id(self, post_id: uuid.UUID) -> Optional[Post]:
        q = select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_platforms(self, post_id: uuid.UUID) -> List[PostPlatform]:
        q = (
            select(PostPlatform)
            .where(PostPlatform.post_id == post_id)
            .order_by(PostPlatform.platform)
            .execution_options(populate_existing=True)
        )
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def list_media(self, post_id: uuid.UUID) -> List[MediaFile]:
        q = select(MediaFile).where(MediaFile.post_id == post_id).order_by(MediaFile.created_at, MediaFile.id)
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def get_detail(self, post_id: uuid.UUID) -> Optional[PostDetail]:
        q = (
            select(Post, User.email, User.full_name)
            .join(User, User.id == Post.user_id)
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        row = (await self.session.execute(q)).first()
        if row is None:
            return None
        post, email, full_name = row

        approver = User.__table__.alias("approver")
        aq = (
            select(PostApproval, approver.c.email, approver.c.full_name)
            .outerjoin(approver, approver.c.id == PostApproval.approver_id)
            .where(PostApproval.post_id == post_id)
            .order_by(PostApproval.created_at.desc(), PostApproval.id.desc())
        )
        approvals = [
            ApprovalRead(
                id=a.id,
                approver_id=a.approver_id,
                approver_email=a_email,
                approver_name=a_name,
                action=a.action,
                comment=a.comment,
                created_at=a.created_at,
            )
            for a, a_email, a_name in (await self.session.execute(aq)).all()
        ]

        media = [
            MediaFileRead(
                id=m.id,
                file_name=m.file_name,
                file_type=m.file_type,
                file_size=m.file_size,
                mime_type=m.mime_type,
                url=media_path_url(m.file_name),
                created_at=m.created_at,
            )
            for m in await self.list_media(post_id)
        ]

        return PostDetail(
            **post.model_dump(),
            email=email,
            full_name=full_name,
            platforms=[PlatformTargetRead.model_validate(p) for p in await self.list_platforms(post_id)],
            media_files=media,
            approvals=approvals,
        )

    async def list_for_owner(
        self,
        owner_id: uuid.UUID,
        status: Optional[str] = None,
        platform: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[PostSummary]:
        q = (
            select(
                Post,
                User.email,
                User.full_name,
                func.count(distinct(PostPlatform.id)),
                func.count(distinct(MediaFile.id)),
            )
            .join(User, User.id == Post.user_id)
            .outerjoin(PostPlatform, PostPlatform.post_id == Post.id)
            .outerjoin(MediaFile, MediaFile.post_id == Post.id)
            .where(Post.user_id == owner_id)
        )
        if status:
            q = q.where(Post.status == status)
        if platform:
            q = q.where(Post.id.in_(select(PostPlatform.post_id).where(PostPlatform.platform == platform)))
        q = (
            q.group_by(Post.id, User.email, User.full_name)
            .order_by(Post.created_at.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        rows = (await self.session.execute(q)).all()
        if not rows:
            return []

        by_post: Dict[uuid.UUID, List[PlatformStatusRead]] = {}
        pq = (
            select(PostPlatform.post_id, PostPlatform.platform, PostPlatform.platform_status)
            .where(PostPlatform.post_id.in_([r[0].id for r in rows]))
            .order_by(PostPlatform.platform)
        )
        for post_id, name, platform_status in (await self.session.execute(pq)).all():
            by_post.setdefault(post_id, []).append(PlatformStatusRead(platform=name, platform_status=platform_status))

        return [
            PostSummary(
                **post.model_dump(),
                email=email,
                full_name=full_name,
                platform_count=platform_count,
                media_count=media_count,
                platforms=by_post.get(post.id, []),
            )
            for post, email, full_name, platform_count, media_count in rows
        ]

    async def _apply_post_fields(self, post_id: uuid.UUID, status: Optional[str], fields: dict) -> None:
        values = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if status is not None:
            values["status"] = status
        if not values:
            return
        values["updated_at"] = utcnow()
        await self.session.execute(update(Post).where(Post.id == post_id).values(**values))

    async def _apply_platform_result(
        self,
        post_id: uuid.UUID,
        platform: str,
        status: Optional[str],
        external_id: Optional[str],
        error: Optional[str],
    ) -> int:
        res = await self.session.execute(
            update(PostPlatform)
            .where(PostPlatform.post_id == post_id, PostPlatform.platform == platform)
            .values(
                platform_status=status,
                platform_post_id=external_id,
                platform_error=error,
                updated_at=utcnow(),
            )
        )
        return res.rowcount

    async def update_status(self, post_id: uuid.UUID, new_status: Optional[str], **fields) -> None:
        """Status plus auxiliary fields (error_message, posted_at, external ids) in one commit."""
        try:
            await self._apply_post_fields(post_id, new_status, fields)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def update_platform_result(
        self,
        post_id: uuid.UUID,
        platform: str,
        status: Optional[str],
        external_id: Optional[str] = None,
        error: Optional[str] = None,
    ) -> int:
        try:
            changed = await self._apply_platform_result(post_id, platform, status, external_id, error)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return changed

    async def apply_result(
        self,
        post_id: uuid.UUID,
        status: Optional[str],
        fields: dict,
        platform_results: Sequence[dict],
    ) -> None:
        """Post fields and any number of platform rows, committed together."""
        try:
            await self._apply_post_fields(post_id, status, fields)
            for r in platform_results:
                await self._apply_platform_result(
                    post_id, r["platform"], r.get("status"), r.get("external_id"), r.get("error")
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def _transition(self, post_id: uuid.UUID, expected_status: str, new_status: str) -> bool:
        res = await self.session.execute(
            update(Post)
            .where(Post.id == post_id, Post.status == expected_status)
            .values(status=new_status, updated_at=utcnow())
        )
        return res.rowcount > 0

    async def transition_status(self, post_id: uuid.UUID, expected_status: str, new_status: str) -> bool:
        """Compare-and-set on status; False when the post is no longer in expected_status."""
        try:
            changed = await self._transition(post_id, expected_status, new_status)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return changed

    async def add_approval(
        self,
        post_id: uuid.UUID,
        approver_id: Optional[uuid.UUID],
        action: str,
        comment: Optional[str] = None,
    ) -> PostApproval:
        approval = PostApproval(post_id=post_id, approver_id=approver_id, action=action, comment=comment)
        try:
            self.session.add(approval)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return approval

    async def record_review(
        self,
        post_id: uuid.UUID,
        expected_status: str,
        new_status: str,
        approver_id: uuid.UUID,
        action: str,
        comment: Optional[str] = None,
    ) -> bool:
        """
        Move the post from expected_status to new_status and append the approval
        record in one transaction. The update is conditional on the current
        status, so of two concurrent reviews only one succeeds.
        """
        try:
            if not await self._transition(post_id, expected_status, new_status):
                await self.session.rollback()
                return False
            self.session.add(PostApproval(post_id=post_id, approver_id=approver_id, action=action, comment=comment))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return True

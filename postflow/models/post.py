# postflow/models/post.py
from enum import Enum
from sqlmodel import SQLModel, Field, Column
from typing import Optional
import uuid
from datetime import datetime
from sqlalchemy import CheckConstraint, String, Text, UniqueConstraint

from .base import UTCDateTime, utcnow


class Platform(str, Enum):
    instagram = "instagram"
    linkedin = "linkedin"
    youtube = "youtube"
    facebook = "facebook"
    x = "x"


class PostingMode(str, Enum):
    automatic = "automatic"
    approval = "approval"


class PostStatus(str, Enum):
    draft = "draft"
    pending_approval = "pending_approval"
    scheduled = "scheduled"
    posted = "posted"
    failed = "failed"
    rejected = "rejected"


class ApprovalAction(str, Enum):
    approved = "approved"
    rejected = "rejected"


def _in_list(column: str, enum_cls) -> str:
    values = ", ".join(f"'{m.value}'" for m in enum_cls)
    return f"{column} IN ({values})"


class Post(SQLModel, table=True):
    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint(_in_list("posting_mode", PostingMode), name="ck_posts_posting_mode"),
        CheckConstraint(_in_list("status", PostStatus), name="ck_posts_status"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    caption: Optional[str] = Field(default=None, sa_column=Column(Text))
    posting_mode: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(default=PostStatus.draft.value, sa_column=Column(String(20), nullable=False, index=True))
    scheduled_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    posted_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    n8n_workflow_id: Optional[str] = Field(default=None, max_length=255)
    n8n_execution_id: Optional[str] = Field(default=None, max_length=255)
    error_message: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class PostPlatform(SQLModel, table=True):
    """One row per (post, platform); tracks that platform's publish outcome."""

    __tablename__ = "post_platforms"
    __table_args__ = (
        UniqueConstraint("post_id", "platform", name="uq_post_platforms_post_platform"),
        CheckConstraint(_in_list("platform", Platform), name="ck_post_platforms_platform"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    platform: str = Field(max_length=50)
    platform_post_id: Optional[str] = Field(default=None, max_length=255)
    platform_status: Optional[str] = Field(default=None, max_length=50)
    platform_error: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class MediaFile(SQLModel, table=True):
    __tablename__ = "media_files"

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    file_name: str = Field(max_length=255)
    file_path: str = Field(sa_column=Column(Text, nullable=False))
    file_type: Optional[str] = Field(default=None, max_length=50)
    file_size: Optional[int] = None
    mime_type: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class PostApproval(SQLModel, table=True):
    __tablename__ = "post_approvals"
    __table_args__ = (
        CheckConstraint(_in_list("action", ApprovalAction), name="ck_post_approvals_action"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", ondelete="CASCADE", index=True)
    approver_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    action: str = Field(max_length=20)
    comment: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

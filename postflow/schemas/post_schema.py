# postflow/schemas/post_schema.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
import uuid
from datetime import datetime

from ..models.post import PostStatus


class PostRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    caption: Optional[str]
    posting_mode: str
    status: str
    scheduled_at: Optional[datetime]
    posted_at: Optional[datetime]
    n8n_workflow_id: Optional[str]
    n8n_execution_id: Optional[str]
    error_message: Optional[str]
    created_at: datetime
    updated_at: datetime


class PlatformTargetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    platform: str
    platform_post_id: Optional[str]
    platform_status: Optional[str]
    platform_error: Optional[str]
    updated_at: datetime


class PlatformStatusRead(BaseModel):
    platform: str
    platform_status: Optional[str]


class MediaFileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_name: str
    file_type: Optional[str]
    file_size: Optional[int]
    mime_type: Optional[str]
    url: str
    created_at: datetime


class ApprovalRead(BaseModel):
    id: int
    approver_id: Optional[uuid.UUID]
    approver_email: Optional[str]
    approver_name: Optional[str]
    action: str
    comment: Optional[str]
    created_at: datetime


class PostDetail(PostRead):
    email: Optional[str] = None
    full_name: Optional[str] = None
    platforms: List[PlatformTargetRead] = []
    media_files: List[MediaFileRead] = []
    approvals: List[ApprovalRead] = []


class PostSummary(PostRead):
    email: Optional[str] = None
    full_name: Optional[str] = None
    platform_count: int = 0
    media_count: int = 0
    platforms: List[PlatformStatusRead] = []


class PostEnvelope(BaseModel):
    message: str
    post: PostDetail


class ReviewRequest(BaseModel):
    comment: Optional[str] = None


class WebhookPlatformStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    platform: str
    status: Optional[str] = None
    platform_post_id: Optional[str] = Field(default=None, alias="platformPostId")
    error: Optional[str] = None


class WebhookStatusUpdate(BaseModel):
    """Callback body sent by the automation engine; every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    status: Optional[PostStatus] = None
    platform_statuses: Optional[List[WebhookPlatformStatus]] = Field(default=None, alias="platformStatuses")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
    n8n_execution_id: Optional[str] = Field(default=None, alias="n8nExecutionId")

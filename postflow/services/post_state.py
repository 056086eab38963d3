# postflow/services/post_state.py
"""
Post lifecycle rules.

    draft                (automatic, no schedule; no automatic way out)
    pending_approval --approve--> scheduled | posted
    pending_approval --reject---> rejected
    any non-draft    --webhook--> posted | failed

posted, failed and rejected are terminal for local business logic.
"""
from datetime import datetime
from typing import Optional

from ..models.base import as_utc, utcnow
from ..models.post import PostingMode, PostStatus
from .errors import InvalidStateError, ValidationError

TERMINAL_STATUSES = frozenset({PostStatus.posted, PostStatus.failed, PostStatus.rejected})
WEBHOOK_STATUSES = (PostStatus.posted, PostStatus.failed)


def initial_status(mode: PostingMode, scheduled_at: Optional[datetime]) -> PostStatus:
    if mode == PostingMode.approval:
        return PostStatus.pending_approval
    if scheduled_at is not None:
        return PostStatus.scheduled
    return PostStatus.draft


def status_after_approval(scheduled_at: Optional[datetime], now: Optional[datetime] = None) -> PostStatus:
    now = as_utc(now or utcnow())
    if scheduled_at is not None and as_utc(scheduled_at) > now:
        return PostStatus.scheduled
    return PostStatus.posted


def should_dispatch(status: PostStatus) -> bool:
    """Everything except a draft is handed to the automation engine on creation."""
    return status != PostStatus.draft


def is_terminal(status: str) -> bool:
    return PostStatus(status) in TERMINAL_STATUSES


def ensure_pending_approval(current: str, action: str) -> None:
    if current != PostStatus.pending_approval.value:
        raise InvalidStateError(f"Post cannot be {action}. Current status: {current}")


def ensure_webhook_transition(current: str, reported: PostStatus) -> None:
    """The engine may only report an outcome, and only for a post that was handed to it."""
    if reported not in WEBHOOK_STATUSES:
        allowed = ", ".join(s.value for s in WEBHOOK_STATUSES)
        raise ValidationError(f"Invalid webhook status: {reported.value}. Allowed: {allowed}")
    if current == PostStatus.draft.value:
        raise InvalidStateError(f"Post was never dispatched. Current status: {current}")

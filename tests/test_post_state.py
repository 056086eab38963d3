from datetime import datetime, timedelta, timezone

import pytest

from postflow.models.post import PostingMode, PostStatus
from postflow.services.errors import InvalidStateError, ValidationError
from postflow.services.post_service import parse_mode, parse_platforms, parse_scheduled_at
from postflow.services.post_state import (
    ensure_pending_approval,
    ensure_webhook_transition,
    initial_status,
    is_terminal,
    should_dispatch,
    status_after_approval,
)

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestInitialStatus:
    def test_approval_mode_waits_for_review(self):
        assert initial_status(PostingMode.approval, None) == PostStatus.pending_approval
        assert initial_status(PostingMode.approval, NOW) == PostStatus.pending_approval

    def test_automatic_with_schedule(self):
        assert initial_status(PostingMode.automatic, NOW) == PostStatus.scheduled

    def test_automatic_without_schedule_is_draft(self):
        assert initial_status(PostingMode.automatic, None) == PostStatus.draft

    def test_only_drafts_stay_local(self):
        assert should_dispatch(PostStatus.draft) is False
        assert should_dispatch(PostStatus.pending_approval) is True
        assert should_dispatch(PostStatus.scheduled) is True


class TestApprovalOutcome:
    def test_future_schedule(self):
        assert status_after_approval(NOW + timedelta(hours=1), now=NOW) == PostStatus.scheduled

    def test_past_or_missing_schedule(self):
        assert status_after_approval(NOW - timedelta(minutes=1), now=NOW) == PostStatus.posted
        assert status_after_approval(None, now=NOW) == PostStatus.posted

    def test_only_pending_posts_are_reviewable(self):
        ensure_pending_approval("pending_approval", "approved")
        with pytest.raises(InvalidStateError, match="Current status: posted"):
            ensure_pending_approval("posted", "approved")

    @pytest.mark.parametrize("status", ["posted", "failed", "rejected"])
    def test_terminal(self, status):
        assert is_terminal(status)

    @pytest.mark.parametrize("status", ["draft", "pending_approval", "scheduled"])
    def test_not_terminal(self, status):
        assert not is_terminal(status)


class TestWebhookOutcome:
    @pytest.mark.parametrize("current", ["pending_approval", "scheduled", "posted", "failed"])
    @pytest.mark.parametrize("reported", [PostStatus.posted, PostStatus.failed])
    def test_dispatched_posts_accept_outcomes(self, current, reported):
        ensure_webhook_transition(current, reported)

    @pytest.mark.parametrize(
        "reported", [PostStatus.draft, PostStatus.pending_approval, PostStatus.scheduled, PostStatus.rejected]
    )
    def test_only_outcomes_are_reportable(self, reported):
        with pytest.raises(ValidationError, match="Invalid webhook status"):
            ensure_webhook_transition("scheduled", reported)

    def test_draft_was_never_dispatched(self):
        with pytest.raises(InvalidStateError, match="never dispatched"):
            ensure_webhook_transition("draft", PostStatus.posted)


class TestParsing:
    def test_platforms_json_list(self):
        assert parse_platforms('["instagram", "x"]') == ["instagram", "x"]

    @pytest.mark.parametrize("raw", ["instagram", "[]", '{"a": 1}', '["myspace"]', "[1]"])
    def test_platforms_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_platforms(raw)

    def test_mode(self):
        assert parse_mode("approval") == PostingMode.approval
        with pytest.raises(ValidationError):
            parse_mode("manual")

    def test_scheduled_at_accepts_zulu(self):
        parsed = parse_scheduled_at("2026-03-02T09:30:00Z", now=NOW)
        assert parsed == datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_scheduled_at_offset_is_normalised(self):
        parsed = parse_scheduled_at("2026-03-02T11:30:00+02:00", now=NOW)

        assert parsed == datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_scheduled_at_without_offset_is_utc(self):
        assert parse_scheduled_at("2026-03-02T09:30:00", now=NOW) == datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

    def test_scheduled_at_empty(self):
        assert parse_scheduled_at(None, now=NOW) is None
        assert parse_scheduled_at("", now=NOW) is None

    def test_scheduled_at_garbage(self):
        with pytest.raises(ValidationError, match="Invalid scheduledAt date format"):
            parse_scheduled_at("next tuesday", now=NOW)

    def test_scheduled_at_in_past(self):
        with pytest.raises(ValidationError, match="must be in the future"):
            parse_scheduled_at("2026-03-01T11:00:00Z", now=NOW)

"""Tests for stateless alert trigger functions."""

from datetime import datetime, timedelta, timezone

import pytest

from ar_momentum.alerts.schemas import AlertSubscription
from ar_momentum.alerts.triggers import (
    build_content_notification,
    check_momentum_threshold,
    is_cooled_down,
    preview_text,
    summarize_comment,
    summarize_rating,
)
from ar_momentum.momentum.schemas import MomentumRecord

NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)
WEEK = timedelta(days=7)


def _record(score: float) -> MomentumRecord:
    return MomentumRecord(
        artist_id="a1",
        name="Nova",
        genres=("indie",),
        current_popularity=62,
        current_followers=12000,
        delta_popularity=8.0,
        delta_followers_pct=0.15,
        delta_instagram_pct=0.0,
        delta_tiktok_pct=0.0,
        delta_youtube_pct=0.0,
        momentum_score=score,
        sparkline=(54, 62),
    )


def _sub(**overrides) -> AlertSubscription:
    fields = {
        "user_id": "u1",
        "artist_id": "a1",
        "threshold": 5.0,
        "artist_name": "Nova",
        "user_email": "fan@example.com",
    }
    fields.update(overrides)
    return AlertSubscription(**fields)


class TestCooldown:

    def test_never_triggered(self):
        assert is_cooled_down(None, NOW, WEEK)

    def test_strictly_greater(self):
        assert not is_cooled_down(NOW - WEEK, NOW, WEEK)
        assert is_cooled_down(NOW - WEEK - timedelta(seconds=1), NOW, WEEK)


class TestMomentumThreshold:
    """Firing rule for momentum alerts."""

    def test_fires_at_threshold(self):
        n = check_momentum_threshold(_sub(), _record(5.0), NOW, WEEK)
        assert n is not None
        assert n.notification_type == "momentum_threshold"

    def test_below_threshold(self):
        assert check_momentum_threshold(_sub(), _record(4.99), NOW, WEEK) is None

    def test_no_record(self):
        assert check_momentum_threshold(_sub(), None, NOW, WEEK) is None

    def test_inactive(self):
        assert check_momentum_threshold(_sub(is_active=False), _record(9.0), NOW, WEEK) is None

    def test_within_cooldown(self):
        sub = _sub(last_triggered=NOW - timedelta(days=1))
        assert check_momentum_threshold(sub, _record(9.0), NOW, WEEK) is None

    def test_after_cooldown(self):
        sub = _sub(last_triggered=NOW - timedelta(days=8))
        assert check_momentum_threshold(sub, _record(7.0), NOW, WEEK) is not None

    def test_message_and_payload(self):
        n = check_momentum_threshold(
            _sub(), _record(6.3), NOW, WEEK, frontend_url="https://arclub.test/",
        )
        assert n.title == "Momentum Alert: Nova"
        assert n.message == (
            "Nova's momentum score (6.3) has exceeded your threshold of 5"
        )
        assert n.data["artist_id"] == "a1"
        assert n.data["current_followers"] == 12000
        assert n.data["url"] == "https://arclub.test/artist/a1"
        assert n.recipient_email == "fan@example.com"
        assert n.created_at == NOW


class TestSummaries:
    """Preview text for content alerts."""

    def test_short_text_untouched(self):
        assert preview_text("great set") == "great set"

    def test_truncated_with_ellipsis(self):
        text = "x" * 150
        assert summarize_comment(text) == "x" * 100 + "..."

    def test_exactly_max_not_truncated(self):
        assert summarize_comment("y" * 100) == "y" * 100

    def test_rating_without_review(self):
        assert summarize_rating(4) == "4 stars"

    def test_rating_with_review(self):
        assert summarize_rating(4.5, "Huge chorus") == '4.5 stars: "Huge chorus"'


class TestContentNotification:
    """Comment and rating messages."""

    def test_comment(self):
        sub = _sub(alert_kind="comment", threshold=None)
        n = build_content_notification(sub, "u2", "love it", NOW)
        assert n.notification_type == "artist_comment"
        assert n.message == 'Someone commented on Nova: "love it"'
        assert n.data["commenter_id"] == "u2"

    def test_rating(self):
        sub = _sub(alert_kind="rating", threshold=None)
        n = build_content_notification(sub, "u2", summarize_rating(5), NOW, rating=5)
        assert n.notification_type == "artist_rating"
        assert n.message == "Someone rated Nova 5 stars"
        assert n.data["rater_id"] == "u2"
        assert n.data["rating"] == 5

    def test_comment_payload_has_no_rating(self):
        sub = _sub(alert_kind="comment", threshold=None)
        n = build_content_notification(sub, "u2", "love it", NOW, rating=5)
        assert "rating" not in n.data

    def test_momentum_subscription_rejected(self):
        with pytest.raises(ValueError):
            build_content_notification(_sub(), "u2", "x", NOW)

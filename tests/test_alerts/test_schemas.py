"""Tests for alert subscription and notification schemas."""

from datetime import datetime, timezone

import pytest

from ar_momentum.alerts.schemas import AlertSubscription, Notification, SweepResult


class TestAlertSubscription:
    """Validation in __post_init__."""

    def test_momentum_defaults(self):
        sub = AlertSubscription(user_id="u1", artist_id="a1", threshold=5.0)
        assert sub.alert_kind == "momentum"
        assert sub.is_active is True
        assert sub.last_triggered is None
        assert len(sub.alert_id) == 36

    def test_momentum_requires_threshold(self):
        with pytest.raises(ValueError, match="threshold is required"):
            AlertSubscription(user_id="u1", artist_id="a1")

    def test_content_alert_rejects_threshold(self):
        with pytest.raises(ValueError, match="must be omitted"):
            AlertSubscription(user_id="u1", artist_id="a1", alert_kind="comment", threshold=3.0)

    def test_invalid_kind(self):
        with pytest.raises(ValueError, match="Invalid alert_kind"):
            AlertSubscription(user_id="u1", artist_id="a1", alert_kind="follow")

    def test_to_dict(self):
        ts = datetime(2026, 3, 1, tzinfo=timezone.utc)
        sub = AlertSubscription(
            user_id="u1", artist_id="a1", alert_kind="rating", last_triggered=ts,
        )
        d = sub.to_dict()
        assert d["alert_kind"] == "rating"
        assert d["threshold"] is None
        assert d["last_triggered"] == "2026-03-01T00:00:00+00:00"


class TestNotification:
    """Notification type validation and round trip."""

    def test_invalid_type(self):
        with pytest.raises(ValueError, match="Invalid notification_type"):
            Notification(user_id="u1", notification_type="spam", title="t", message="m")

    def test_from_dict_with_json_payload(self):
        n = Notification.from_dict({
            "user_id": "u1",
            "notification_type": "artist_comment",
            "title": "New comment",
            "message": "hi",
            "data": '{"artist_id": "a1"}',
            "created_at": "2026-03-01T10:00:00+00:00",
        })
        assert n.data == {"artist_id": "a1"}
        assert n.created_at.tzinfo is not None
        assert n.read is False


class TestSweepResult:

    def test_to_dict(self):
        assert SweepResult(checked=3, triggered=1).to_dict() == {
            "checked": 3,
            "triggered": 1,
            "failed": 0,
            "duration_ms": 0,
        }

"""Stateless trigger functions for alert evaluation.

Each function decides whether one subscription should fire and, if so,
builds the Notification to deliver. No I/O, no state: delivery and the
``last_triggered`` write-back live in AlertService.
"""

from datetime import datetime, timedelta

from ar_momentum.alerts.schemas import AlertSubscription, Notification
from ar_momentum.momentum.schemas import MomentumRecord

CONTENT_NOTIFICATION_TYPES: dict[str, str] = {
    "comment": "artist_comment",
    "rating": "artist_rating",
}


def is_cooled_down(
    last_triggered: datetime | None,
    now: datetime,
    cooldown: timedelta,
) -> bool:
    """True if the alert has never fired or fired strictly longer ago than ``cooldown``."""
    if last_triggered is None:
        return True
    return now - last_triggered > cooldown


def preview_text(text: str, max_chars: int = 100) -> str:
    """Truncate user text for quoting in a notification."""
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}..."


def summarize_comment(content: str, max_chars: int = 100) -> str:
    """Summary of a new comment, as passed to ``evaluate_content_alert``."""
    return preview_text(content, max_chars)


def summarize_rating(
    rating: int | float,
    review: str | None = None,
    max_chars: int = 100,
) -> str:
    """Summary of a new rating, as passed to ``evaluate_content_alert``."""
    summary = f"{rating:g} stars"
    if review:
        summary += f': "{preview_text(review, max_chars)}"'
    return summary


def check_momentum_threshold(
    subscription: AlertSubscription,
    record: MomentumRecord | None,
    now: datetime,
    cooldown: timedelta,
    frontend_url: str | None = None,
) -> Notification | None:
    """Check whether a momentum alert should fire.

    Fires iff the subscription is an active momentum alert, the score has
    reached the threshold (``>=``), and the cool-down has elapsed.

    Args:
        subscription: Momentum alert being evaluated.
        record: Freshly computed momentum, or None if the artist has none.
        now: Evaluation time.
        cooldown: Minimum time since ``last_triggered``.
        frontend_url: Base URL for the artist link in the payload.

    Returns:
        Notification or None.
    """
    if not subscription.is_active or subscription.alert_kind != "momentum":
        return None
    if subscription.threshold is None or record is None:
        return None
    if record.momentum_score < subscription.threshold:
        return None
    if not is_cooled_down(subscription.last_triggered, now, cooldown):
        return None

    name = subscription.artist_name or record.name
    data = {
        "artist_id": subscription.artist_id,
        "alert_id": subscription.alert_id,
        "momentum": round(record.momentum_score, 4),
        "threshold": subscription.threshold,
        "current_popularity": record.current_popularity,
        "current_followers": record.current_followers,
        "delta_popularity": record.delta_popularity,
        "delta_followers_pct": round(record.delta_followers_pct, 6),
    }
    if frontend_url:
        data["url"] = f"{frontend_url.rstrip('/')}/artist/{subscription.artist_id}"

    return Notification(
        user_id=subscription.user_id,
        notification_type="momentum_threshold",
        title=f"Momentum Alert: {name}",
        message=(
            f"{name}'s momentum score ({record.momentum_score:.1f}) has "
            f"exceeded your threshold of {subscription.threshold:g}"
        ),
        data=data,
        recipient_email=subscription.user_email,
        created_at=now,
    )


def build_content_notification(
    subscription: AlertSubscription,
    actor_id: str,
    summary: str,
    now: datetime,
    rating: int | float | None = None,
) -> Notification:
    """Build the notification for a new comment or rating on a watched artist.

    Args:
        subscription: Comment or rating alert being notified.
        actor_id: User who posted the content.
        summary: Output of ``summarize_comment`` / ``summarize_rating``.
        now: Evaluation time.
        rating: Star rating, carried in the payload of rating notifications.

    Raises:
        ValueError: If the subscription is not a content alert.
    """
    kind = subscription.alert_kind
    if kind not in CONTENT_NOTIFICATION_TYPES:
        raise ValueError(f"{kind!r} is not a content alert kind")

    name = subscription.artist_name or subscription.artist_id
    if kind == "comment":
        title = f"New comment on {name}"
        message = f'Someone commented on {name}: "{summary}"'
        actor_key = "commenter_id"
    else:
        title = f"New rating for {name}"
        message = f"Someone rated {name} {summary}"
        actor_key = "rater_id"

    data = {
        "artist_id": subscription.artist_id,
        "alert_id": subscription.alert_id,
        actor_key: actor_id,
    }
    if kind == "rating" and rating is not None:
        data["rating"] = rating

    return Notification(
        user_id=subscription.user_id,
        notification_type=CONTENT_NOTIFICATION_TYPES[kind],
        title=title,
        message=message,
        data=data,
        recipient_email=subscription.user_email,
        created_at=now,
    )

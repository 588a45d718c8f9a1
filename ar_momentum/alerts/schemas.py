"""Schema definitions for alert subscriptions and notifications.

``AlertSubscription`` maps to the ``alerts`` table: a user's standing
request to be told about one artist. ``Notification`` maps to the
``notifications`` table and is append-only from the engine's side.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

AlertKind = Literal["momentum", "comment", "rating"]

VALID_ALERT_KINDS: frozenset[str] = frozenset({
    "momentum",
    "comment",
    "rating",
})

CONTENT_ALERT_KINDS: frozenset[str] = frozenset({"comment", "rating"})

NotificationType = Literal["momentum_threshold", "artist_comment", "artist_rating"]

VALID_NOTIFICATION_TYPES: frozenset[str] = frozenset({
    "momentum_threshold",
    "artist_comment",
    "artist_rating",
})

THRESHOLD_MIN = 0.0
THRESHOLD_MAX = 100.0


@dataclass
class AlertSubscription:
    """A subscriber's alert on one artist.

    Attributes:
        user_id: Subscriber who owns the alert.
        artist_id: Artist being watched.
        alert_kind: momentum (score threshold), comment, or rating.
        threshold: Score threshold, required for momentum alerts and
            absent for content alerts.
        is_active: Inactive alerts are never evaluated.
        last_triggered: When a notification was last delivered.
        alert_id: UUID4 identifier.
        created_at: When the subscription was created.
        artist_name: Display name joined from ``artists`` (not persisted).
        user_email: Subscriber email joined from ``users`` (not persisted).
    """

    user_id: str
    artist_id: str
    alert_kind: str = "momentum"
    threshold: float | None = None
    is_active: bool = True
    last_triggered: datetime | None = None
    alert_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    artist_name: str = ""
    user_email: str | None = None

    def __post_init__(self) -> None:
        if self.alert_kind not in VALID_ALERT_KINDS:
            raise ValueError(
                f"Invalid alert_kind {self.alert_kind!r}. "
                f"Must be one of: {sorted(VALID_ALERT_KINDS)}"
            )
        if self.alert_kind == "momentum":
            if self.threshold is None:
                raise ValueError("threshold is required for momentum alerts")
        elif self.threshold is not None:
            raise ValueError(
                f"threshold must be omitted for {self.alert_kind} alerts"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "alert_id": self.alert_id,
            "user_id": self.user_id,
            "artist_id": self.artist_id,
            "alert_kind": self.alert_kind,
            "threshold": self.threshold,
            "is_active": self.is_active,
            "last_triggered": (
                self.last_triggered.isoformat() if self.last_triggered else None
            ),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Notification:
    """A fire-and-forget message for one subscriber.

    Attributes:
        user_id: Recipient.
        notification_type: What produced the notification.
        title: Short human-readable summary.
        message: Full message body.
        data: Structured payload (artist_id, alert_id, values).
        recipient_email: Address for email delivery, when known.
        notification_id: UUID4 identifier.
        read: Whether the user has seen it.
        created_at: When the notification was generated.
    """

    user_id: str
    notification_type: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    recipient_email: str | None = None
    notification_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    read: bool = False
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __post_init__(self) -> None:
        if self.notification_type not in VALID_NOTIFICATION_TYPES:
            raise ValueError(
                f"Invalid notification_type {self.notification_type!r}. "
                f"Must be one of: {sorted(VALID_NOTIFICATION_TYPES)}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "notification_id": self.notification_id,
            "user_id": self.user_id,
            "notification_type": self.notification_type,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "read": self.read,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        """Create a Notification from a dictionary."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = datetime.now(timezone.utc)

        payload = data.get("data", {})
        if isinstance(payload, str):
            payload = json.loads(payload)

        return cls(
            notification_id=data.get("notification_id", str(uuid.uuid4())),
            user_id=data["user_id"],
            notification_type=data["notification_type"],
            title=data["title"],
            message=data["message"],
            data=payload,
            read=data.get("read", False),
            created_at=created_at,
        )


@dataclass
class SweepResult:
    """Outcome of one score-alert sweep."""

    checked: int = 0
    triggered: int = 0
    failed: int = 0
    duration_ms: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "checked": self.checked,
            "triggered": self.triggered,
            "failed": self.failed,
            "duration_ms": self.duration_ms,
        }

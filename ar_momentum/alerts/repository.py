"""Alert subscription and notification repositories.

Follows the asyncpg repository pattern: module-level SQL, a
``_row_to_*`` converter per table, and one class per table.
``SubscriptionRepository.update_last_triggered`` is the only writer of
``alerts.last_triggered``.
"""

import json
import logging
from datetime import datetime
from typing import Any

from ar_momentum.alerts.schemas import AlertSubscription, Notification
from ar_momentum.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_ALERT_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id     TEXT PRIMARY KEY,
    email  TEXT
);

CREATE TABLE IF NOT EXISTS alerts (
    alert_id        TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    artist_id       TEXT NOT NULL REFERENCES artists(id) ON DELETE CASCADE,
    alert_kind      TEXT NOT NULL DEFAULT 'momentum'
                    CHECK (alert_kind IN ('momentum', 'comment', 'rating')),
    threshold       DOUBLE PRECISION,
    is_active       BOOLEAN NOT NULL DEFAULT TRUE,
    last_triggered  TIMESTAMPTZ,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CHECK (alert_kind <> 'momentum' OR threshold IS NOT NULL)
);

-- At most one active alert per (user, artist, kind)
CREATE UNIQUE INDEX IF NOT EXISTS uq_alerts_active
    ON alerts(user_id, artist_id, alert_kind) WHERE is_active;
CREATE INDEX IF NOT EXISTS idx_alerts_kind_active
    ON alerts(alert_kind, artist_id) WHERE is_active;

CREATE TABLE IF NOT EXISTS notifications (
    notification_id    TEXT PRIMARY KEY,
    user_id            TEXT NOT NULL,
    notification_type  TEXT NOT NULL,
    title              TEXT NOT NULL,
    message            TEXT NOT NULL,
    data               JSONB NOT NULL DEFAULT '{}',
    read               BOOLEAN NOT NULL DEFAULT FALSE,
    created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_notifications_user_created
    ON notifications(user_id, created_at DESC);
"""

_SELECT_SUBSCRIPTIONS_SQL = """
    SELECT a.*, ar.name AS artist_name, u.email AS user_email
    FROM alerts a
    JOIN artists ar ON ar.id = a.artist_id
    LEFT JOIN users u ON u.id = a.user_id
"""


def _row_to_subscription(row: Any) -> AlertSubscription:
    """Convert an asyncpg Record to an AlertSubscription."""
    kind = row["alert_kind"]
    threshold = row["threshold"]
    # Legacy content alerts may carry a stray threshold
    if kind != "momentum":
        threshold = None

    return AlertSubscription(
        alert_id=row["alert_id"],
        user_id=row["user_id"],
        artist_id=row["artist_id"],
        alert_kind=kind,
        threshold=threshold,
        is_active=row["is_active"],
        last_triggered=row["last_triggered"],
        created_at=row["created_at"],
        artist_name=row.get("artist_name") or "",
        user_email=row.get("user_email"),
    )


def _row_to_notification(row: Any) -> Notification:
    """Convert an asyncpg Record to a Notification."""
    data = row.get("data", {})
    if isinstance(data, str):
        data = json.loads(data)

    return Notification(
        notification_id=row["notification_id"],
        user_id=row["user_id"],
        notification_type=row["notification_type"],
        title=row["title"],
        message=row["message"],
        data=data,
        read=row.get("read", False),
        created_at=row["created_at"],
    )


class SubscriptionRepository:
    """Repository for alert subscriptions stored in the ``alerts`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the alerts, notifications and users tables (idempotent)."""
        await self._db.execute(_CREATE_ALERT_TABLES_SQL)
        logger.info("Alert tables ensured")

    async def list_active(
        self,
        alert_kind: str,
        artist_id: str | None = None,
    ) -> list[AlertSubscription]:
        """Active subscriptions of one kind, optionally for one artist.

        Args:
            alert_kind: momentum, comment, or rating.
            artist_id: Restrict to one artist.

        Returns:
            Subscriptions ordered by creation time.
        """
        if artist_id is None:
            sql = f"""
                {_SELECT_SUBSCRIPTIONS_SQL}
                WHERE a.is_active AND a.alert_kind = $1
                ORDER BY a.created_at, a.alert_id
            """
            rows = await self._db.fetch(sql, alert_kind)
        else:
            sql = f"""
                {_SELECT_SUBSCRIPTIONS_SQL}
                WHERE a.is_active AND a.alert_kind = $1 AND a.artist_id = $2
                ORDER BY a.created_at, a.alert_id
            """
            rows = await self._db.fetch(sql, alert_kind, artist_id)
        return [_row_to_subscription(row) for row in rows]

    async def upsert_active(self, subscription: AlertSubscription) -> AlertSubscription:
        """Insert an active subscription, or update the existing active one.

        Keeps the one-active-per-(user, artist, kind) invariant: a repeat
        subscribe only replaces the threshold.
        """
        sql = """
            INSERT INTO alerts (
                alert_id, user_id, artist_id, alert_kind,
                threshold, is_active, last_triggered, created_at
            ) VALUES ($1, $2, $3, $4, $5, TRUE, NULL, $6)
            ON CONFLICT (user_id, artist_id, alert_kind) WHERE is_active
            DO UPDATE SET threshold = EXCLUDED.threshold
            RETURNING *
        """
        row = await self._db.fetchrow(
            sql,
            subscription.alert_id,
            subscription.user_id,
            subscription.artist_id,
            subscription.alert_kind,
            subscription.threshold,
            subscription.created_at,
        )
        return _row_to_subscription(row)

    async def set_active(
        self,
        alert_id: str,
        user_id: str,
        active: bool,
    ) -> bool:
        """Activate or deactivate a user's subscription.

        Activating first deactivates any other active subscription for the
        same (user, artist, kind), in the same transaction.

        Returns:
            True if updated, False if the alert does not belong to the user.
        """
        async with self._db.transaction() as conn:
            row = await conn.fetchrow(
                "SELECT artist_id, alert_kind FROM alerts "
                "WHERE alert_id = $1 AND user_id = $2 FOR UPDATE",
                alert_id,
                user_id,
            )
            if row is None:
                return False

            if active:
                await conn.execute(
                    """
                    UPDATE alerts SET is_active = FALSE
                    WHERE user_id = $1 AND artist_id = $2 AND alert_kind = $3
                      AND alert_id <> $4 AND is_active
                    """,
                    user_id,
                    row["artist_id"],
                    row["alert_kind"],
                    alert_id,
                )

            await conn.execute(
                "UPDATE alerts SET is_active = $1 WHERE alert_id = $2",
                active,
                alert_id,
            )
        return True

    async def update_threshold(
        self,
        alert_id: str,
        user_id: str,
        threshold: float,
    ) -> bool:
        sql = """
            UPDATE alerts SET threshold = $1
            WHERE alert_id = $2 AND user_id = $3 AND alert_kind = 'momentum'
            RETURNING alert_id
        """
        result = await self._db.fetchval(sql, threshold, alert_id, user_id)
        return result is not None

    async def update_last_triggered(self, alert_id: str, triggered_at: datetime) -> bool:
        """Record a successful delivery for an alert.

        Returns:
            True if updated, False if the alert no longer exists.
        """
        sql = """
            UPDATE alerts SET last_triggered = $1
            WHERE alert_id = $2
            RETURNING alert_id
        """
        result = await self._db.fetchval(sql, triggered_at, alert_id)
        return result is not None

    async def delete(self, alert_id: str, user_id: str) -> bool:
        """Delete a user's subscription (explicit unsubscribe)."""
        sql = """
            DELETE FROM alerts
            WHERE alert_id = $1 AND user_id = $2
            RETURNING alert_id
        """
        result = await self._db.fetchval(sql, alert_id, user_id)
        return result is not None


class NotificationRepository:
    """Repository for in-app notifications."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create(self, notification: Notification) -> Notification:
        """Insert a notification.

        Returns:
            The created Notification as stored.
        """
        sql = """
            INSERT INTO notifications (
                notification_id, user_id, notification_type,
                title, message, data, read, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING *
        """
        row = await self._db.fetchrow(
            sql,
            notification.notification_id,
            notification.user_id,
            notification.notification_type,
            notification.title,
            notification.message,
            json.dumps(notification.data),
            notification.read,
            notification.created_at,
        )
        return _row_to_notification(row)

"""Alert service orchestrating trigger evaluation, delivery and write-back.

The only alert component with side effects: it reads subscriptions,
recomputes momentum through the scorer, delivers through the dispatcher
and records ``last_triggered``. Trigger logic is delegated to stateless
functions in ``triggers.py``.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any

from ar_momentum.alerts.config import AlertConfig
from ar_momentum.alerts.errors import NotificationDeliveryError
from ar_momentum.alerts.schemas import (
    CONTENT_ALERT_KINDS,
    THRESHOLD_MAX,
    THRESHOLD_MIN,
    AlertSubscription,
    Notification,
    SweepResult,
)
from ar_momentum.alerts.triggers import (
    build_content_notification,
    check_momentum_threshold,
)
from ar_momentum.momentum.schemas import MomentumRecord
from ar_momentum.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


def _validate_threshold(threshold: float) -> None:
    if not THRESHOLD_MIN <= threshold <= THRESHOLD_MAX:
        raise ValueError(
            f"threshold must be between {THRESHOLD_MIN:g} and {THRESHOLD_MAX:g}, "
            f"got {threshold}"
        )


class AlertService:
    """Orchestrator for alert sweeps, content alerts and subscriptions.

    Sweeps run sequentially, one subscription at a time, so a failure
    (momentum lookup or delivery) is isolated to that subscription.
    """

    def __init__(
        self,
        config: AlertConfig,
        subscription_repo: Any,
        dispatcher: Any,
        scorer: Any,
        frontend_url: str | None = None,
    ) -> None:
        self._config = config
        self._subscriptions = subscription_repo
        self._dispatcher = dispatcher
        self._scorer = scorer
        self._frontend_url = frontend_url

    async def evaluate_score_alerts(
        self,
        cooldown: timedelta | None = None,
        now: datetime | None = None,
    ) -> SweepResult:
        """Fire every active momentum alert whose score reached its threshold.

        Args:
            cooldown: Minimum time since ``last_triggered`` (defaults to
                ``AlertConfig.score_cooldown``).
            now: Evaluation time (defaults to current UTC time).

        Returns:
            SweepResult counting subscriptions checked, triggered and failed.
        """
        cooldown = cooldown if cooldown is not None else self._config.score_cooldown
        now = now or datetime.now(timezone.utc)
        metrics = get_metrics()
        start = time.perf_counter()
        result = SweepResult()

        subscriptions = await self._subscriptions.list_active("momentum")

        for sub in subscriptions:
            if sub.threshold is None:
                continue

            try:
                record = await self._scorer.compute_entity_momentum(
                    sub.artist_id,
                    window_days=self._config.score_window_days,
                    now=now,
                )
            except Exception as e:
                logger.error(
                    "Momentum lookup failed for alert %s (artist %s): %s",
                    sub.alert_id, sub.artist_id, e,
                )
                result.failed += 1
                continue

            result.checked += 1
            notification = check_momentum_threshold(
                sub, record, now, cooldown, self._frontend_url,
            )
            if notification is None:
                metrics.record_alert_check("momentum", triggered=False)
                continue

            if await self._deliver(sub, notification, now):
                metrics.record_alert_check("momentum", triggered=True)
                result.triggered += 1
                logger.info(
                    "Momentum alert %s fired for user %s (score %.2f >= %g)",
                    sub.alert_id, sub.user_id, record.momentum_score, sub.threshold,
                )
            else:
                metrics.record_alert_check("momentum", triggered=False)
                result.failed += 1

        result.duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "Score alert sweep: %d subscriptions, %d checked, %d triggered, %d failed",
            len(subscriptions), result.checked, result.triggered, result.failed,
        )
        return result

    async def evaluate_artist_score_alerts(
        self,
        record: MomentumRecord,
        cooldown: timedelta | None = None,
        now: datetime | None = None,
    ) -> int:
        """Fire one artist's momentum alerts against a freshly computed score.

        Used right after a snapshot refresh scores an artist, so no momentum
        lookup happens here. The default cool-down is the short re-notify
        guard (``AlertConfig.renotify_cooldown``), not the sweep's.

        Args:
            record: Momentum just computed for the artist.
            cooldown: Minimum time since ``last_triggered``.
            now: Evaluation time (defaults to current UTC time).

        Returns:
            Number of subscribers successfully notified.
        """
        cooldown = cooldown if cooldown is not None else self._config.renotify_cooldown
        now = now or datetime.now(timezone.utc)
        metrics = get_metrics()

        try:
            subscriptions = await self._subscriptions.list_active(
                "momentum", record.artist_id,
            )
        except Exception as e:
            logger.error(
                "Could not load momentum alerts for artist %s: %s", record.artist_id, e,
            )
            return 0

        notified = 0
        for sub in subscriptions:
            notification = check_momentum_threshold(
                sub, record, now, cooldown, self._frontend_url,
            )
            if notification is None:
                metrics.record_alert_check("momentum", triggered=False)
                continue

            delivered = await self._deliver(sub, notification, now)
            metrics.record_alert_check("momentum", triggered=delivered)
            if delivered:
                notified += 1

        logger.info(
            "Momentum alerts for artist %s at score %.2f: %d notified",
            record.artist_id, record.momentum_score, notified,
        )
        return notified

    async def evaluate_content_alert(
        self,
        artist_id: str,
        actor_id: str,
        kind: str,
        summary: str,
        now: datetime | None = None,
        rating: int | float | None = None,
    ) -> int:
        """Notify subscribers of a new comment or rating on an artist.

        No cool-down applies. The actor's own subscription is skipped.

        Args:
            artist_id: Artist the content was posted on.
            actor_id: User who posted it.
            kind: ``comment`` or ``rating``.
            summary: Preview text from ``summarize_comment``/``summarize_rating``.
            now: Evaluation time (defaults to current UTC time).
            rating: Star rating of a new rating, added to its payload.

        Returns:
            Number of subscribers successfully notified.

        Raises:
            ValueError: If ``kind`` is not a content alert kind.
        """
        if kind not in CONTENT_ALERT_KINDS:
            raise ValueError(
                f"Invalid content alert kind {kind!r}. "
                f"Must be one of: {sorted(CONTENT_ALERT_KINDS)}"
            )
        now = now or datetime.now(timezone.utc)
        metrics = get_metrics()

        try:
            subscriptions = await self._subscriptions.list_active(kind, artist_id)
        except Exception as e:
            logger.error(
                "Could not load %s alerts for artist %s: %s", kind, artist_id, e,
            )
            return 0

        notified = 0
        for sub in subscriptions:
            if sub.user_id == actor_id:
                continue

            notification = build_content_notification(
                sub, actor_id, summary, now, rating=rating,
            )
            delivered = await self._deliver(sub, notification, now)
            metrics.record_alert_check(kind, triggered=delivered)
            if delivered:
                notified += 1

        logger.info(
            "%s alerts for artist %s: %d notified", kind.capitalize(), artist_id, notified,
        )
        return notified

    # ── Subscription lifecycle ───────────────────────────

    async def subscribe(
        self,
        user_id: str,
        artist_id: str,
        kind: str = "momentum",
        threshold: float | None = None,
    ) -> AlertSubscription:
        """Create (or update) the user's active alert for an artist.

        Raises:
            ValueError: On an invalid kind, or a missing/out-of-range
                threshold for momentum alerts.
        """
        if threshold is not None:
            _validate_threshold(threshold)
        subscription = AlertSubscription(
            user_id=user_id,
            artist_id=artist_id,
            alert_kind=kind,
            threshold=threshold,
        )
        stored = await self._subscriptions.upsert_active(subscription)
        logger.info(
            "User %s subscribed to %s alerts for artist %s",
            user_id, kind, artist_id,
        )
        return stored

    async def set_active(self, alert_id: str, user_id: str, active: bool) -> bool:
        """Pause or resume a subscription. Returns False if not the user's."""
        return await self._subscriptions.set_active(alert_id, user_id, active)

    async def update_threshold(
        self,
        alert_id: str,
        user_id: str,
        threshold: float,
    ) -> bool:
        """Change a momentum alert's threshold. Returns False if not found."""
        _validate_threshold(threshold)
        return await self._subscriptions.update_threshold(alert_id, user_id, threshold)

    async def unsubscribe(self, alert_id: str, user_id: str) -> bool:
        """Delete a subscription. Returns False if not the user's."""
        return await self._subscriptions.delete(alert_id, user_id)

    async def _deliver(
        self,
        sub: AlertSubscription,
        notification: Notification,
        now: datetime,
    ) -> bool:
        """Send one notification, then stamp ``last_triggered``.

        Returns True once the notification is delivered, even if the
        write-back fails afterwards.
        """
        try:
            await self._dispatcher.send_notification(notification)
        except NotificationDeliveryError as e:
            logger.warning("Alert %s not delivered, stays eligible: %s", sub.alert_id, e)
            return False
        except Exception as e:
            logger.error("Alert %s not delivered: %s", sub.alert_id, e)
            return False

        try:
            await self._subscriptions.update_last_triggered(sub.alert_id, now)
        except Exception as e:
            logger.error(
                "Alert %s delivered but last_triggered not recorded: %s",
                sub.alert_id, e,
            )
        return True

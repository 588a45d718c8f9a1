"""Alerts: momentum threshold and content alerts for subscribed users.

Components:
- AlertSubscription / Notification / SweepResult: data model
- AlertConfig: Pydantic settings (ALERTS_* env vars)
- triggers: stateless firing decisions and message building
- SubscriptionRepository / NotificationRepository: PostgreSQL persistence
- NotificationDispatcher: in-app delivery plus optional email
- AlertService: sweep, content alerts and subscription lifecycle
- check_alerts: batch job entry point
"""

from ar_momentum.alerts.config import AlertConfig
from ar_momentum.alerts.dispatcher import (
    NotificationConfig,
    NotificationDispatcher,
    build_dispatcher,
)
from ar_momentum.alerts.errors import NotificationDeliveryError
from ar_momentum.alerts.jobs import build_alert_service, check_alerts
from ar_momentum.alerts.repository import NotificationRepository, SubscriptionRepository
from ar_momentum.alerts.schemas import AlertSubscription, Notification, SweepResult
from ar_momentum.alerts.service import AlertService
from ar_momentum.alerts.triggers import summarize_comment, summarize_rating

__all__ = [
    "AlertConfig",
    "AlertService",
    "AlertSubscription",
    "Notification",
    "NotificationConfig",
    "NotificationDeliveryError",
    "NotificationDispatcher",
    "NotificationRepository",
    "SubscriptionRepository",
    "SweepResult",
    "build_alert_service",
    "build_dispatcher",
    "check_alerts",
    "summarize_comment",
    "summarize_rating",
]

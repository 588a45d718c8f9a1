"""Notification dispatcher orchestrating delivery across channels.

The in-app channel is required: if it still fails after retries the
dispatcher raises ``NotificationDeliveryError`` and the caller must leave
the alert eligible. The email channel is optional; its failures are logged
and counted but never fail the delivery.

Pattern: Orchestrator (like AlertService), delegates to stateless channels.
"""

import asyncio
import logging
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ar_momentum.alerts.channels import (
    CircuitBreaker,
    EmailChannel,
    InAppChannel,
    NotificationChannel,
)
from ar_momentum.alerts.errors import NotificationDeliveryError
from ar_momentum.alerts.schemas import Notification
from ar_momentum.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


class NotificationConfig(BaseSettings):
    """Configuration for notification dispatch."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    retry_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum send attempts per channel per notification",
    )
    retry_delays: list[float] = Field(
        default=[1.0, 5.0, 30.0],
        description="Per-attempt delay in seconds before each retry",
    )
    circuit_breaker_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive failures before circuit opens",
    )
    circuit_breaker_recovery_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Seconds before circuit breaker probes recovery",
    )
    email_enabled: bool = Field(
        default=True,
        description="Email momentum alerts when SendGrid is configured",
    )


class NotificationDispatcher:
    """Delivers notifications to a required primary channel and optional extras.

    Each channel is wrapped in a CircuitBreaker. Optional channels only see
    notifications they accept and only after the primary delivery succeeded.
    """

    def __init__(
        self,
        primary: NotificationChannel,
        secondary: list[NotificationChannel] | None = None,
        config: NotificationConfig | None = None,
    ) -> None:
        self._config = config or NotificationConfig()
        self._primary = self._wrap(primary)
        self._secondary = [self._wrap(ch) for ch in secondary or []]

    def _wrap(self, channel: NotificationChannel) -> CircuitBreaker:
        if isinstance(channel, CircuitBreaker):
            return channel
        return CircuitBreaker(
            channel=channel,
            failure_threshold=self._config.circuit_breaker_threshold,
            recovery_timeout=self._config.circuit_breaker_recovery_seconds,
        )

    @property
    def channels(self) -> list[CircuitBreaker]:
        """Access wrapped channels, primary first (for inspection/testing)."""
        return [self._primary, *self._secondary]

    async def send_notification(self, notification: Notification) -> list[tuple[str, bool]]:
        """Deliver a notification.

        Args:
            notification: Notification to deliver.

        Returns:
            List of (channel_name, success) tuples, primary first.

        Raises:
            NotificationDeliveryError: If the primary channel failed.
        """
        metrics = get_metrics()

        if not await self._send_with_retry(self._primary, notification):
            metrics.record_notification_failure(self._primary.name)
            raise NotificationDeliveryError(
                notification.notification_id,
                self._primary.name,
                f"{self._config.retry_max_attempts} attempts failed",
            )

        results = [(self._primary.name, True)]
        for channel in self._secondary:
            if not channel.accepts(notification):
                continue
            success = await self._send_with_retry(channel, notification)
            if not success:
                metrics.record_notification_failure(channel.name)
            results.append((channel.name, success))

        self._record_delivery(notification, results)
        return results

    async def _send_with_retry(
        self,
        channel: NotificationChannel,
        notification: Notification,
    ) -> bool:
        """Attempt to send with configured retries.

        Returns:
            True if any attempt succeeded.
        """
        delays = self._config.retry_delays
        max_attempts = self._config.retry_max_attempts

        for attempt in range(max_attempts):
            try:
                success = await channel.send(notification)
                if success:
                    if attempt > 0:
                        logger.info(
                            "Notification %s delivered to %s on attempt %d",
                            notification.notification_id, channel.name, attempt + 1,
                        )
                    return True
            except Exception as e:
                logger.warning(
                    "Channel %s send error (attempt %d): %s",
                    channel.name, attempt + 1, e,
                )

            if attempt < max_attempts - 1 and delays:
                delay = delays[attempt] if attempt < len(delays) else delays[-1]
                await asyncio.sleep(delay)

        logger.warning(
            "All %d attempts exhausted for notification %s on channel %s",
            max_attempts, notification.notification_id, channel.name,
        )
        return False

    def _record_delivery(
        self,
        notification: Notification,
        results: list[tuple[str, bool]],
    ) -> None:
        failures = [name for name, ok in results if not ok]
        if failures:
            logger.warning(
                "Notification %s partial delivery: failed=%s",
                notification.notification_id, failures,
            )
        else:
            logger.debug(
                "Notification %s delivered to %s",
                notification.notification_id, [name for name, _ in results],
            )


def build_dispatcher(
    settings: Any,
    notification_repo: Any,
    config: NotificationConfig | None = None,
) -> NotificationDispatcher:
    """Assemble the dispatcher from application settings.

    Email is added only when SendGrid is configured and enabled.
    """
    config = config or NotificationConfig()
    secondary: list[NotificationChannel] = []

    if config.email_enabled and settings.email_configured:
        secondary.append(
            EmailChannel(
                api_key=settings.sendgrid_api_key,
                from_email=settings.sendgrid_from_email,
                from_name=settings.sendgrid_from_name,
            )
        )
    elif config.email_enabled:
        logger.info("SendGrid not configured; momentum emails disabled")

    return NotificationDispatcher(
        primary=InAppChannel(notification_repo),
        secondary=secondary,
        config=config,
    )

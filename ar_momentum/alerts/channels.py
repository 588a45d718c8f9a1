"""Notification channel implementations for alert delivery.

Provides an ABC for notification channels plus concrete implementations
for in-app notifications (the notifications table) and SendGrid email. A
CircuitBreaker decorator wraps any channel to stop hammering a downstream
service that is already failing.

Pattern: Decorator (CircuitBreaker wraps any NotificationChannel).
"""

import enum
import html
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ar_momentum.alerts.schemas import Notification

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class NotificationChannel(ABC):
    """Abstract base for notification delivery channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'in_app', 'email')."""

    def accepts(self, notification: Notification) -> bool:
        """Whether this channel delivers this kind of notification."""
        return True

    @abstractmethod
    async def send(self, notification: Notification) -> bool:
        """Deliver a notification through this channel.

        Args:
            notification: Notification to deliver.

        Returns:
            True if delivery succeeded, False otherwise.
        """


class InAppChannel(NotificationChannel):
    """Persists notifications for the in-app notification feed."""

    def __init__(self, notification_repo: Any) -> None:
        self._repo = notification_repo

    @property
    def name(self) -> str:
        return "in_app"

    async def send(self, notification: Notification) -> bool:
        try:
            await self._repo.create(notification)
            return True
        except Exception as e:
            logger.warning(
                "In-app notification %s for user %s failed: %s",
                notification.notification_id, notification.user_id, e,
            )
            return False


class EmailChannel(NotificationChannel):
    """Sends momentum alerts by email through the SendGrid v3 API.

    Only momentum threshold notifications with a known recipient address
    are emailed; comment and rating notifications stay in-app.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str = "A&R Club Alerts",
        notification_types: frozenset[str] = frozenset({"momentum_threshold"}),
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._from_name = from_name
        self._notification_types = notification_types
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "email"

    def accepts(self, notification: Notification) -> bool:
        return (
            notification.notification_type in self._notification_types
            and bool(notification.recipient_email)
        )

    def _render_html(self, notification: Notification) -> str:
        data = notification.data
        items = []
        if "current_popularity" in data:
            items.append(f"<li>Current Popularity: {data['current_popularity']}</li>")
        if "current_followers" in data:
            items.append(f"<li>Current Followers: {data['current_followers']:,}</li>")
        if "delta_popularity" in data:
            items.append(f"<li>Popularity Change: {data['delta_popularity']:+g}</li>")
        if "delta_followers_pct" in data:
            items.append(
                f"<li>Follower Growth: {data['delta_followers_pct'] * 100:+.1f}%</li>"
            )

        parts = [
            f"<h2>{html.escape(notification.title)}</h2>",
            f"<p>{html.escape(notification.message)}</p>",
        ]
        if items:
            parts.append("<ul>" + "".join(items) + "</ul>")
        if "url" in data:
            parts.append(f'<p><a href="{html.escape(data["url"])}">View Artist Details</a></p>')
        return "\n".join(parts)

    def _build_payload(self, notification: Notification) -> dict:
        """Build the SendGrid mail/send JSON body."""
        return {
            "personalizations": [{"to": [{"email": notification.recipient_email}]}],
            "from": {"email": self._from_email, "name": self._from_name},
            "subject": notification.title,
            "content": [
                {"type": "text/plain", "value": notification.message},
                {"type": "text/html", "value": self._render_html(notification)},
            ],
        }

    async def send(self, notification: Notification) -> bool:
        payload = self._build_payload(notification)
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(SENDGRID_SEND_URL, json=payload, headers=headers)
                if resp.is_success:
                    return True
                logger.warning(
                    "SendGrid returned %d for notification %s",
                    resp.status_code, notification.notification_id,
                )
                return False
        except httpx.TimeoutException:
            logger.warning(
                "SendGrid timed out for notification %s", notification.notification_id,
            )
            return False
        except Exception as e:
            logger.warning(
                "SendGrid failed for notification %s: %s",
                notification.notification_id, e,
            )
            return False


class CircuitState(enum.Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker(NotificationChannel):
    """Wraps a NotificationChannel with circuit breaker protection.

    State machine: CLOSED → OPEN → HALF_OPEN → CLOSED.

    - CLOSED: All requests pass through. Consecutive failures tracked.
    - OPEN: Requests rejected immediately. After recovery_timeout, moves
      to HALF_OPEN.
    - HALF_OPEN: Single probe request allowed. Success → CLOSED, failure → OPEN.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
    ) -> None:
        self._channel = channel
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure_time: float = 0.0

    @property
    def name(self) -> str:
        return self._channel.name

    @property
    def state(self) -> CircuitState:
        return self._state

    def accepts(self, notification: Notification) -> bool:
        return self._channel.accepts(notification)

    async def send(self, notification: Notification) -> bool:
        if self._state == CircuitState.OPEN:
            if time.monotonic() - self._last_failure_time >= self._recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info(
                    "Circuit breaker %s: OPEN → HALF_OPEN (recovery probe)",
                    self.name,
                )
            else:
                logger.debug(
                    "Circuit breaker %s: OPEN, rejecting notification %s",
                    self.name, notification.notification_id,
                )
                return False

        success = await self._channel.send(notification)

        if success:
            if self._state == CircuitState.HALF_OPEN:
                logger.info(
                    "Circuit breaker %s: HALF_OPEN → CLOSED (probe succeeded)",
                    self.name,
                )
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1
            self._last_failure_time = time.monotonic()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning(
                    "Circuit breaker %s: HALF_OPEN → OPEN (probe failed)",
                    self.name,
                )
            elif self._consecutive_failures >= self._failure_threshold:
                self._state = CircuitState.OPEN
                logger.warning(
                    "Circuit breaker %s: CLOSED → OPEN after %d failures",
                    self.name, self._consecutive_failures,
                )

        return success

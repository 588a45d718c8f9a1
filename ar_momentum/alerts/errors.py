"""Alert delivery errors."""


class NotificationDeliveryError(Exception):
    """A notification could not be delivered through its required channel.

    The subscription's ``last_triggered`` must not be updated, so the
    alert stays eligible on the next sweep.
    """

    def __init__(self, notification_id: str, channel: str, reason: str = "") -> None:
        self.notification_id = notification_id
        self.channel = channel
        self.reason = reason
        message = f"Notification {notification_id} not delivered via {channel}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

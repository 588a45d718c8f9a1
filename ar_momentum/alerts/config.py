"""Alert evaluation configuration.

Controls the momentum alert cool-downs and the momentum window used for
score alerts. All settings can be overridden via ``ALERTS_*`` environment
variables.
"""

from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlertConfig(BaseSettings):
    """Configuration for the alert evaluator."""

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        case_sensitive=False,
        extra="ignore",
    )

    score_cooldown_hours: int = Field(
        default=168,
        ge=1,
        description="Minimum hours between two firings of one momentum alert (7 days)",
    )
    renotify_cooldown_hours: int = Field(
        default=24,
        ge=1,
        description="Re-notify guard for alerts evaluated right after a score refresh",
    )
    score_window_days: int = Field(
        default=14,
        ge=1,
        le=365,
        description="Momentum window used when recomputing scores for alerts",
    )

    @property
    def score_cooldown(self) -> timedelta:
        return timedelta(hours=self.score_cooldown_hours)

    @property
    def renotify_cooldown(self) -> timedelta:
        return timedelta(hours=self.renotify_cooldown_hours)

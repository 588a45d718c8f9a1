"""Momentum scoring configuration.

Window, result size, cohort construction, and fetch concurrency. All
settings can be overridden via ``MOMENTUM_*`` environment variables.

Score weights are fixed constants in ``scorer.py``; stored alert
thresholds are calibrated against them.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MomentumConfig(BaseSettings):
    """Configuration for the momentum scorer."""

    model_config = SettingsConfigDict(
        env_prefix="MOMENTUM_",
        case_sensitive=False,
        extra="ignore",
    )

    default_window_days: int = Field(
        default=14,
        ge=1,
        le=365,
        description="Lookback window for first-vs-last deltas",
    )
    default_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Default leaderboard size",
    )
    include_self_in_cohort: bool = Field(
        default=True,
        description=(
            "Score each artist against a cohort distribution that contains "
            "its own delta (False = leave-one-out)"
        ),
    )
    fetch_batch_size: int = Field(
        default=200,
        ge=1,
        description="Artists per batched snapshot query",
    )
    max_concurrency: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Concurrent snapshot queries per scoring run",
    )

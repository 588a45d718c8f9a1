"""Environment-driven application settings."""

from ar_momentum.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]

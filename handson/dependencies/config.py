"""
Configuration access for the wiring layer.
"""

from functools import lru_cache

from handson.core.config import AppSettings, get_settings
from handson.core.logging import configure_logging


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created, logged and checked once per process."""
    settings = get_settings()
    configure_logging(settings.log_level)
    settings.report_missing_configuration()
    return settings


def get_app_settings() -> AppSettings:
    """Return application settings."""
    return _settings_singleton()


__all__ = ["get_app_settings"]

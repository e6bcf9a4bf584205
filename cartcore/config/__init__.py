"""
Configuration — settings and logging.

    from cartcore.config import get_settings, configure_logging

    settings = get_settings()
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)
"""

from cartcore.config.settings import Settings, get_settings
from cartcore.config.logging import configure_logging

__all__ = (
    "Settings",
    "get_settings",
    "configure_logging",
)

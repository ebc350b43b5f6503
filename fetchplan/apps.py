"""
Django app configuration for the fetchplan library.

This module configures:
- Validation of the FETCHPLAN settings at startup
- Reloading of cached settings when FETCHPLAN changes (tests)
"""

import logging

from django.apps import AppConfig
from django.core.signals import setting_changed

logger = logging.getLogger(__name__)


def _reload_settings(*, setting, **kwargs):
    if setting != "FETCHPLAN":
        return
    from .core.settings import reset_settings_cache

    reset_settings_cache()
    logger.debug("FETCHPLAN settings changed, cache cleared")


class FetchPlanConfig(AppConfig):
    """Django app configuration for fetchplan."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "fetchplan"
    verbose_name = "Fetch Plan"
    label = "fetchplan"

    def ready(self):
        """Validate settings once Django has loaded."""
        setting_changed.connect(_reload_settings, dispatch_uid="fetchplan_reload_settings")

        # Raises ImproperlyConfigured on invalid FETCHPLAN values.
        from .core.settings import get_fetchplan_settings

        loaded = get_fetchplan_settings()
        logger.debug(
            "fetchplan initialized (batch_size=%s, default_strategy=%s, max_page_size=%s)",
            loaded.loading.batch_size,
            loaded.loading.default_strategy,
            loaded.pagination.max_page_size,
        )

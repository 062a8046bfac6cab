"""
Signal handlers that keep cached configuration in step with Django settings.
"""

from django.core.signals import setting_changed
from django.dispatch import receiver
import logging

logger = logging.getLogger(__name__)


@receiver(setting_changed)
def reload_pos_sync_settings(sender, setting, **kwargs):
    """Reload app_settings when POS_SYNC is overridden at runtime."""
    if setting != "POS_SYNC":
        return

    from core_backend.config import app_settings

    app_settings.reload()
    logger.debug("POS_SYNC changed, app_settings reloaded")


@receiver(setting_changed)
def reset_cache_circuit_breakers(sender, setting, **kwargs):
    """A new CACHES configuration gets a clean circuit-breaker state."""
    if setting != "CACHES":
        return

    from core_backend.infrastructure.cache import DraftCacheManager

    DraftCacheManager.reset_circuit_breakers()

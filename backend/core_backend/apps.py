from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CoreBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core_backend"

    def ready(self):
        """
        Register settings signal handlers when Django starts up.
        """
        import core_backend.signals  # noqa

        logger.debug("core_backend ready: settings signal handlers registered")

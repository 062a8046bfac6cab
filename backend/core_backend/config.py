"""
Centralized access to the order-sync configuration using the Singleton pattern.

Business logic reads tunables (highlight window, submission timeout, table
sentinels...) through ``app_settings`` instead of reaching into
``django.conf.settings`` directly, so defaults live in one place.
"""

from typing import Any, Dict, Optional
import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    "HIGHLIGHT_WINDOW_SECONDS": 30,
    "MODIFIED_GRACE_SECONDS": 5,
    "SUBMISSION_TIMEOUT_SECONDS": 30,
    "QUICK_TABLE_NUMBER": "QUICK",
    "DELIVERY_TABLE_NUMBER": "DELIVERY",
    "CUSTOMER_PHONE_PATTERN": r"^09\d{8}$",
    "CUSTOMER_NAME_MIN_LENGTH": 3,
    "DRAFT_CACHE_ALIAS": "drafts",
    "BASE_CURRENCY": "USD",
}


class AppSettings:
    """
    A LAZY singleton that provides the order-sync tunables.

    Values are read from ``settings.POS_SYNC`` on first attribute access and
    fall back to ``DEFAULTS``. Call ``reload()`` after changing settings at
    runtime (tests use it together with ``override_settings``).
    """

    _instance: Optional["AppSettings"] = None
    _initialized: bool = False

    def __new__(cls) -> "AppSettings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _setup(self):
        if not self._initialized:
            self.load_settings()
            self._initialized = True

    def __getattr__(self, name: str) -> Any:
        if not self._initialized:
            self._setup()

        try:
            return self.__dict__[name.lower()]
        except KeyError:
            raise AttributeError(f"'AppSettings' object has no attribute '{name}'")

    def load_settings(self) -> None:
        configured = getattr(settings, "POS_SYNC", {}) or {}
        if not isinstance(configured, dict):
            raise ImproperlyConfigured("POS_SYNC must be a dict")

        unknown = set(configured) - set(DEFAULTS)
        if unknown:
            logger.warning(f"Ignoring unknown POS_SYNC keys: {sorted(unknown)}")

        for key, default in DEFAULTS.items():
            self.__dict__[key.lower()] = configured.get(key, default)

        if self.__dict__["highlight_window_seconds"] <= 0:
            raise ImproperlyConfigured("POS_SYNC['HIGHLIGHT_WINDOW_SECONDS'] must be positive")

    def reload(self) -> None:
        """Drop the loaded values so the next access re-reads settings."""
        for key in DEFAULTS:
            self.__dict__.pop(key.lower(), None)
        self._initialized = False
        logger.debug("POS_SYNC settings reloaded")


app_settings = AppSettings()

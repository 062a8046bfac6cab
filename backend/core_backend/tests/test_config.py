import pytest
from unittest import mock

from django.core.exceptions import ImproperlyConfigured
from django.test import override_settings

from core_backend.config import DEFAULTS, app_settings


class TestAppSettings:
    """Lazy POS_SYNC configuration."""

    def test_defaults(self):
        assert app_settings.HIGHLIGHT_WINDOW_SECONDS == 30
        assert app_settings.MODIFIED_GRACE_SECONDS == 5
        assert app_settings.QUICK_TABLE_NUMBER == "QUICK"
        assert app_settings.DELIVERY_TABLE_NUMBER == "DELIVERY"

    def test_lowercase_access(self):
        assert app_settings.submission_timeout_seconds == app_settings.SUBMISSION_TIMEOUT_SECONDS

    def test_override_reloads(self):
        with override_settings(POS_SYNC={"SUBMISSION_TIMEOUT_SECONDS": 90}):
            assert app_settings.SUBMISSION_TIMEOUT_SECONDS == 90
            # Missing keys fall back to defaults
            assert app_settings.CUSTOMER_NAME_MIN_LENGTH == DEFAULTS["CUSTOMER_NAME_MIN_LENGTH"]

        assert app_settings.SUBMISSION_TIMEOUT_SECONDS == 30

    def test_unknown_keys_are_logged(self):
        with mock.patch("core_backend.config.logger") as logger:
            with override_settings(POS_SYNC={"HIGHLIGHT_WINDOW": 10}):
                app_settings.HIGHLIGHT_WINDOW_SECONDS

        logger.warning.assert_called_once()

    def test_non_positive_window_is_rejected(self):
        with override_settings(POS_SYNC={"HIGHLIGHT_WINDOW_SECONDS": 0}):
            with pytest.raises(ImproperlyConfigured):
                app_settings.HIGHLIGHT_WINDOW_SECONDS

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            app_settings.NOT_A_SETTING

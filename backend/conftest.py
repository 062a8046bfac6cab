"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from django.test import override_settings
from django.core.cache import caches

from core_backend.infrastructure.cache import DraftCacheManager


TEST_CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'test-default',
    },
    'drafts': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'test-drafts',
        'TIMEOUT': None,
    },
}

TEST_CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer',
    },
}


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_backends():
    """
    Run every test against in-memory caches and a fresh channel layer.

    Overriding the settings per test resets Django's cache handlers and the
    Channels layer registry, so no test sees another's drafts or groups.
    """
    with override_settings(CACHES=TEST_CACHES, CHANNEL_LAYERS=TEST_CHANNEL_LAYERS):
        yield


@pytest.fixture(autouse=True)
def clear_cache_after_test(isolated_backends):
    """
    Clear cache after each test to prevent cache pollution.

    This ensures tests don't interfere with each other through stored drafts
    or a tripped circuit breaker.
    """
    yield  # Run the test
    for alias in TEST_CACHES:
        caches[alias].clear()
    DraftCacheManager.reset_circuit_breakers()


# ============================================================================
# CACHE FIXTURES
# ============================================================================

@pytest.fixture
def disable_cache():
    """
    Disable cache for tests that should not use caching.

    Usage:
        def test_without_cache(disable_cache):
            # Drafts are accepted but never kept
            DraftStore().save("rest-1", "5", draft)
    """
    with override_settings(
        CACHES={
            'default': {
                'BACKEND': 'django.core.cache.backends.dummy.DummyCache',
            },
            'drafts': {
                'BACKEND': 'django.core.cache.backends.dummy.DummyCache',
            }
        }
    ):
        yield


@pytest.fixture
def pos_sync_settings():
    """
    Override POS_SYNC tunables for one test.

    Usage:
        def test_short_window(pos_sync_settings):
            with pos_sync_settings(HIGHLIGHT_WINDOW_SECONDS=5):
                ...
    """
    from django.conf import settings

    def _override(**values):
        return override_settings(POS_SYNC={**settings.POS_SYNC, **values})

    return _override

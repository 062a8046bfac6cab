"""
Access to the terminal's durable cache aliases.

Draft persistence is a convenience: when an alias is missing or keeps
failing, callers get ``None`` and carry on without it.
"""

from django.conf import settings
from django.core.cache import caches
import logging
import time

logger = logging.getLogger(__name__)


class DraftCacheManager:
    """Cache alias lookup guarded by a per-alias circuit breaker."""

    DRAFT_CACHE = 'drafts'

    FAILURE_THRESHOLD = 5
    RETRY_AFTER_SECONDS = 300

    # alias -> {'failures': int, 'last_failure': float}
    _breakers = {}

    @classmethod
    def get_cache(cls, cache_name=DRAFT_CACHE):
        """The cache for ``cache_name``, or None while it is unusable."""
        if cls._is_open(cache_name):
            logger.warning(f"[DraftCacheManager] Skipping cache '{cache_name}', circuit open")
            return None

        try:
            return caches[cache_name]
        except Exception as e:
            cls.record_failure(cache_name)
            logger.error(f"[DraftCacheManager] Cache '{cache_name}' unavailable: {e}")
            return None

    @classmethod
    def _is_open(cls, cache_name):
        breaker = cls._breakers.get(cache_name)
        if not breaker or breaker['failures'] < cls.FAILURE_THRESHOLD:
            return False

        if time.time() - breaker.get('last_failure', 0) < cls.RETRY_AFTER_SECONDS:
            return True

        # Half-open: let the next call try again
        cls._breakers[cache_name] = {'failures': 0}
        logger.info(f"[DraftCacheManager] Retrying cache '{cache_name}'")
        return False

    @classmethod
    def record_failure(cls, cache_name):
        breaker = cls._breakers.setdefault(cache_name, {'failures': 0})
        breaker['failures'] += 1
        breaker['last_failure'] = time.time()

    @classmethod
    def record_success(cls, cache_name):
        if cls._breakers.get(cache_name, {}).get('failures'):
            cls._breakers[cache_name] = {'failures': 0}

    @classmethod
    def reset_circuit_breakers(cls):
        cls._breakers = {}

    @classmethod
    def cache_key(cls, app_name, model_name, identifier, version=None, **kwargs):
        """
        Build a versioned key such as ``v1:cart:draft:rest-1:12``.

        Bumping ``CACHE_VERSION`` orphans every stored value at once. Extra
        keyword arguments are appended in sorted ``name=value`` form.
        """
        version = version or getattr(settings, 'CACHE_VERSION', 1)
        parts = [f"v{version}", app_name, model_name, str(identifier)]
        parts.extend(f"{name}={value}" for name, value in sorted(kwargs.items()))
        return ':'.join(parts)

    @classmethod
    def get_cache_stats(cls, cache_name=DRAFT_CACHE):
        return {
            'cache_name': cache_name,
            'circuit_state': dict(cls._breakers.get(cache_name, {})),
            'available': not cls._is_open(cache_name),
        }

"""
Durable local storage for drafts and display-currency preferences.

Both stores sit on the ``drafts`` cache alias. Persistence here is a
convenience: the authoritative order lives on the server once submitted, so
every backend failure is logged and swallowed, and absent or malformed stored
data reads as empty.
"""

from typing import Optional
import logging

from core_backend.config import app_settings
from core_backend.infrastructure.cache import DraftCacheManager

from .drafts import EMPTY_DRAFT, OrderDraft

logger = logging.getLogger(__name__)


class _CacheStore:
    app_name = "cart"
    model_name = ""

    def __init__(self, cache_alias: Optional[str] = None):
        self.cache_alias = cache_alias or app_settings.DRAFT_CACHE_ALIAS

    def _cache(self):
        return DraftCacheManager.get_cache(self.cache_alias)

    def _key(self, *parts) -> str:
        identifier = ":".join(str(p) for p in parts)
        return DraftCacheManager.cache_key(self.app_name, self.model_name, identifier)

    def _write(self, key, value) -> bool:
        cache = self._cache()
        if cache is None:
            return False
        try:
            cache.set(key, value, timeout=None)
        except Exception as e:
            DraftCacheManager.record_failure(self.cache_alias)
            logger.error(f"[{type(self).__name__}] Failed to save {key}: {e}")
            return False
        DraftCacheManager.record_success(self.cache_alias)
        return True

    def _read(self, key):
        cache = self._cache()
        if cache is None:
            return None
        try:
            value = cache.get(key)
        except Exception as e:
            DraftCacheManager.record_failure(self.cache_alias)
            logger.error(f"[{type(self).__name__}] Failed to load {key}: {e}")
            return None
        DraftCacheManager.record_success(self.cache_alias)
        return value

    def _delete(self, key) -> bool:
        cache = self._cache()
        if cache is None:
            return False
        try:
            cache.delete(key)
        except Exception as e:
            DraftCacheManager.record_failure(self.cache_alias)
            logger.error(f"[{type(self).__name__}] Failed to clear {key}: {e}")
            return False
        DraftCacheManager.record_success(self.cache_alias)
        return True


class DraftStore(_CacheStore):
    """
    One draft per ``(restaurant_id, table_or_session)``.

    Drafts are stored as their plain ``to_dict()`` form, never as pickled
    objects, so a stored draft stays readable across code changes.
    """

    model_name = "draft"

    def key_for(self, restaurant_id, table_or_session) -> str:
        return self._key(restaurant_id, table_or_session or "-")

    def save(self, restaurant_id, table_or_session, draft: OrderDraft) -> bool:
        saved = self._write(self.key_for(restaurant_id, table_or_session), draft.to_dict())
        if saved:
            logger.debug(f"[DraftStore] Saved draft for {restaurant_id}/{table_or_session} "
                         f"({len(draft.items)} lines)")
        return saved

    def load(self, restaurant_id, table_or_session) -> OrderDraft:
        data = self._read(self.key_for(restaurant_id, table_or_session))
        if data is None:
            return EMPTY_DRAFT
        try:
            return OrderDraft.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[DraftStore] Discarding malformed draft for "
                           f"{restaurant_id}/{table_or_session}: {e}")
            return EMPTY_DRAFT

    def clear(self, restaurant_id, table_or_session) -> bool:
        return self._delete(self.key_for(restaurant_id, table_or_session))


class CurrencyPreferenceStore(_CacheStore):
    """The display currency a user picked, one per restaurant."""

    model_name = "currency"

    def save(self, restaurant_id, currency: Optional[str]) -> bool:
        if not currency:
            return self.clear(restaurant_id)
        return self._write(self._key(restaurant_id), str(currency).upper())

    def load(self, restaurant_id) -> Optional[str]:
        value = self._read(self._key(restaurant_id))
        if value is None:
            return None
        if not isinstance(value, str) or not value.strip():
            logger.warning(f"[CurrencyPreferenceStore] Ignoring malformed preference for "
                           f"{restaurant_id}: {value!r}")
            return None
        return value.strip().upper()

    def clear(self, restaurant_id) -> bool:
        return self._delete(self._key(restaurant_id))

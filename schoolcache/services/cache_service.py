from typing import Optional, Dict, Any
from datetime import datetime, timezone
import logging

from schoolcache.core.cache import CacheHandle
from schoolcache.core.cache_config import ADMIN_ROLES
from schoolcache.core.decorators import fail_open

logger = logging.getLogger(__name__)

HEALTH_CHECK_KEY = "health_check_test"


class CacheService:
    """Administrative cache operations and the dashboard invalidation hook."""

    def __init__(self, cache: CacheHandle):
        self.cache = cache

    def get_cache_stats(self) -> Dict[str, Any]:
        stats = self.cache.report()
        stats.update({
            "backend": "memory",
            "max_entries": self.cache.config.max_entries,
            "keys": sorted(self.cache.keys()),
            "timestamp": datetime.now(timezone.utc).isoformat()
        })
        return stats

    def clear_all(self) -> int:
        return self.cache.flush_all()

    def clear_expired(self) -> int:
        return self.cache.sweep()

    @fail_open
    def invalidate_dashboard(self, user_id, school_id, role: Optional[str] = None) -> int:
        """Post-write hook: purge the user's dashboard after a successful change.

        Admin roles see school-wide messages and notifications on their
        dashboard, so those are purged too.
        """
        related = []
        if role in ADMIN_ROLES:
            related = ["mensajes", "notificaciones"]
        return self.cache.invalidate("dashboard", user_id, school_id, related)

    def manual_invalidation(self, kind: str, user_id=None, school_id=None) -> int:
        if kind == "dashboard" and user_id and school_id:
            deleted = self.cache.invalidate("dashboard", user_id, school_id)
            logger.info(f"Dashboard cache invalidated for user {user_id}")
        elif kind == "all" and school_id:
            deleted = self.cache.invalidate_by_entity_id(
                ["dashboard", "mensajes", "anuncios", "notificaciones"], school_id
            )
            logger.info(f"Dashboard, message, announcement and notification caches invalidated for school {school_id}")
        else:
            raise ValueError(
                'Invalid parameters. Use type "dashboard" with user_id and school_id, '
                'or type "all" with school_id'
            )
        return deleted

    def health_check(self) -> bool:
        test_key = self.cache.build_key(HEALTH_CHECK_KEY)
        test_value = {"timestamp": datetime.now(timezone.utc).isoformat()}
        try:
            self.cache.store.set(test_key, test_value, 10)
            retrieved = self.cache.store.peek(test_key)
            self.cache.store.delete(test_key)
        except Exception as e:
            logger.error(f"Cache health check failed: {e}")
            return False
        return retrieved == test_value

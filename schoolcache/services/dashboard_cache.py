from typing import Any, Dict
import logging

from schoolcache.core.cache import CacheHandle
from schoolcache.core.cache_config import DASHBOARD_TYPES
from schoolcache.core.decorators import fail_open

logger = logging.getLogger(__name__)


class DashboardCacheService:
    """Cached dashboard aggregates.

    ``source`` is the dashboard data source; each method awaited here runs the
    underlying aggregation query.
    """

    def __init__(self, cache: CacheHandle, source):
        self.cache = cache
        self.source = source

    async def dashboard_stats(self, user_id, school_id) -> Dict[str, Any]:
        key = self.cache.build_key("dashboard", user_id, school_id)
        return await self.cache.get_or_compute(
            key, "dashboard", lambda: self.source.dashboard_stats(user_id, school_id)
        )

    async def role_summary(self, user_id, school_id, role: str) -> Dict[str, Any]:
        key = self.cache.build_key("dashboard_rol", user_id, school_id, role)
        return await self.cache.get_or_compute(
            key, "dashboard_rol", lambda: self.source.role_summary(user_id, school_id, role)
        )

    async def full_dashboard(self, user_id, school_id) -> Dict[str, Any]:
        key = self.cache.build_key("dashboard_completo", user_id, school_id)
        return await self.cache.get_or_compute(
            key, "dashboard_completo", lambda: self.source.full_dashboard(user_id, school_id)
        )

    async def today_events(self, user_id, school_id, day: str):
        key = self.cache.build_key("eventos_hoy", user_id, school_id, day)
        return await self.cache.get_or_compute(
            key, "eventos_hoy", lambda: self.source.today_events(user_id, school_id, day)
        )

    async def advanced_metrics(self, user_id, school_id) -> Dict[str, Any]:
        key = self.cache.build_key("metricas_avanzadas", user_id, school_id)
        return await self.cache.get_or_compute(
            key, "metricas_avanzadas", lambda: self.source.advanced_metrics(user_id, school_id)
        )

    @fail_open
    def invalidate_user_dashboard(self, user_id, school_id) -> int:
        deleted = self.cache.invalidate(DASHBOARD_TYPES[0], user_id, school_id, DASHBOARD_TYPES[1:])
        logger.info(f"Dashboard cache fully invalidated for user {user_id}")
        return deleted

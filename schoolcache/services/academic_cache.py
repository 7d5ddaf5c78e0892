from typing import Any, Dict, Optional
import logging

from schoolcache.core.cache import CacheHandle
from schoolcache.core.cache_config import (
    ACADEMIC_TYPES,
    DASHBOARD_TYPES,
    STUDENT_RELATED_TYPES,
)
from schoolcache.core.decorators import fail_open

logger = logging.getLogger(__name__)


class AcademicCacheService:
    """Cached grade averages and group statistics, with the invalidation
    hooks academic writes must call once they are committed.

    Student-scoped keys start with (student, school) so a student's grade
    change purges all of their averages with one scope invalidation. Group
    statistics are keyed by course and purged by course id.
    """

    def __init__(self, cache: CacheHandle, source):
        self.cache = cache
        self.source = source

    async def period_average(self, student_id, school_id, subject_id, period: int, academic_year: str) -> Optional[Dict[str, Any]]:
        key = self.cache.build_key("promedio_periodo", student_id, school_id, subject_id, period, academic_year)

        async def compute():
            logger.info(f"Computing period average: {student_id}, {subject_id}, {period}, {academic_year}")
            return await self.source.period_average(student_id, subject_id, period, academic_year)

        return await self.cache.get_or_compute(key, "promedio_periodo", compute)

    async def subject_average(self, student_id, school_id, subject_id, academic_year: str) -> Optional[Dict[str, Any]]:
        key = self.cache.build_key("promedio_asignatura", student_id, school_id, subject_id, academic_year)
        return await self.cache.get_or_compute(
            key,
            "promedio_asignatura",
            lambda: self.source.subject_average(student_id, subject_id, academic_year),
        )

    async def group_statistics(self, course_id, school_id, subject_id, period: int, academic_year: str) -> Dict[str, Any]:
        key = self.cache.build_key("estadisticas_grupo", course_id, school_id, subject_id, period, academic_year)
        return await self.cache.get_or_compute(
            key,
            "estadisticas_grupo",
            lambda: self.source.group_statistics(course_id, subject_id, period, academic_year),
        )

    def invalidate_student(self, student_id, school_id=None) -> int:
        logger.info(f"Invalidating academic cache for student {student_id}")
        if school_id:
            primary, *related = STUDENT_RELATED_TYPES
            return self.cache.invalidate(primary, student_id, school_id, related)
        return self.cache.invalidate_by_entity_id(STUDENT_RELATED_TYPES, student_id)

    def invalidate_course(self, course_id) -> int:
        deleted = self.cache.invalidate_by_entity_id(["estadisticas_grupo"] + DASHBOARD_TYPES, course_id)
        logger.info(f"Academic cache invalidated for course {course_id} - {deleted} keys removed")
        return deleted

    def clear_academic(self) -> int:
        deleted = self.cache.flush_type(ACADEMIC_TYPES)
        logger.info("Academic cache fully cleared")
        return deleted

    @fail_open
    def on_grade_change(self, student_id, subject_id, course_id, school_id) -> int:
        logger.info(f"Invalidating cache after grade change - student {student_id}, subject {subject_id}")
        deleted = self.invalidate_student(student_id, school_id)
        deleted += self.invalidate_course(course_id)
        deleted += self.cache.invalidate(
            "dashboard", student_id, school_id, ["dashboard_rol", "dashboard_completo", "metricas_avanzadas"]
        )
        return deleted

    @fail_open
    def on_achievement_change(self, subject_id, course_id, school_id, period: Optional[int] = None) -> int:
        # An achievement feeds every student's average in the course
        logger.info(f"Invalidating cache after achievement change - subject {subject_id}, period {period}")
        deleted = self.invalidate_course(course_id)
        deleted += self.clear_academic()
        return deleted

    @fail_open
    def on_course_change(self, course_id, school_id) -> int:
        logger.info(f"Invalidating cache after course change - course {course_id}")
        deleted = self.invalidate_course(course_id)
        deleted += self.cache.invalidate_by_entity_id(
            ["dashboard", "dashboard_rol", "dashboard_completo"], school_id
        )
        return deleted

    @fail_open
    def on_period_close(self, school_id, period: int) -> int:
        logger.info(f"Invalidating cache after closing period {period} - school {school_id}")
        deleted = self.clear_academic()
        deleted += self.cache.invalidate_by_entity_id(
            ["dashboard", "dashboard_rol", "dashboard_completo", "metricas_avanzadas"], school_id
        )
        return deleted

"""Cache configuration and TTL settings"""
from typing import Dict

from pydantic import BaseModel


class CachePolicy(BaseModel):
    ttl: int
    desc: str = ""


DEFAULT_TTL = 300

# Cache TTL (Time To Live) configurations in seconds
CACHE_POLICIES: Dict[str, CachePolicy] = {
    "dashboard": CachePolicy(ttl=180, desc="Dashboard - 3 min"),
    "mensajes": CachePolicy(ttl=120, desc="Message list - 2 min"),
    "anuncios": CachePolicy(ttl=300, desc="Announcements - 5 min"),
    "notificaciones": CachePolicy(ttl=60, desc="Notifications - 1 min"),
    "calificaciones": CachePolicy(ttl=240, desc="Grades - 4 min"),
    "cursos": CachePolicy(ttl=600, desc="Course list - 10 min"),
    "usuarios": CachePolicy(ttl=900, desc="User list - 15 min"),

    # Dashboard aggregates
    "dashboard_rol": CachePolicy(ttl=300, desc="Summary by role - 5 min"),
    "dashboard_completo": CachePolicy(ttl=180, desc="Full dashboard - 3 min"),
    "eventos_hoy": CachePolicy(ttl=600, desc="Today's events - 10 min"),
    "metricas_avanzadas": CachePolicy(ttl=900, desc="Advanced metrics - 15 min"),

    # Academic aggregates
    "promedio_periodo": CachePolicy(ttl=300, desc="Period average - 5 min"),
    "promedio_asignatura": CachePolicy(ttl=600, desc="Subject average - 10 min"),
    "estadisticas_grupo": CachePolicy(ttl=180, desc="Group statistics - 3 min"),

    # Messaging
    "destinatarios": CachePolicy(ttl=120, desc="Possible recipients - 2 min"),
    "cursos_destinatarios": CachePolicy(ttl=600, desc="Courses for messages - 10 min"),
    "acudientes": CachePolicy(ttl=300, desc="Student guardians - 5 min"),
    "lista_mensajes": CachePolicy(ttl=120, desc="Message list - 2 min"),

    "asistencia": CachePolicy(ttl=240, desc="Attendance - 4 min"),
    "escuela": CachePolicy(ttl=1800, desc="School info - 30 min"),
    "logros": CachePolicy(ttl=900, desc="Achievements - 15 min"),
}

# Invalidation groups - what to clear together when data changes
DASHBOARD_TYPES = [
    "dashboard",
    "dashboard_rol",
    "dashboard_completo",
    "eventos_hoy",
    "metricas_avanzadas",
]

ACADEMIC_TYPES = [
    "promedio_periodo",
    "promedio_asignatura",
    "estadisticas_grupo",
]

STUDENT_RELATED_TYPES = ACADEMIC_TYPES + [
    "dashboard",
    "dashboard_rol",
    "dashboard_completo",
]

MESSAGE_RELATED_TYPES = [
    "destinatarios",
    "cursos_destinatarios",
    "acudientes",
    "lista_mensajes",
    "dashboard",
    "dashboard_completo",
]

ADMIN_ROLES = ("ADMIN", "RECTOR", "COORDINADOR")


def build_policies(overrides: Dict[str, int] = None) -> Dict[str, CachePolicy]:
    """Copy of the policy table with TTL overrides applied.

    Overrides for unknown types register a new policy.
    """
    policies = {name: policy.model_copy() for name, policy in CACHE_POLICIES.items()}
    for name, ttl in (overrides or {}).items():
        if name in policies:
            policies[name] = policies[name].model_copy(update={"ttl": ttl})
        else:
            policies[name] = CachePolicy(ttl=ttl, desc="Configured override")
    return policies

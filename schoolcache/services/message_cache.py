from typing import Any, Dict, List, Optional
import logging

from schoolcache.core.cache import CacheHandle
from schoolcache.core.cache_config import MESSAGE_RELATED_TYPES
from schoolcache.core.decorators import fail_open

logger = logging.getLogger(__name__)


class MessageCacheService:

    def __init__(self, cache: CacheHandle, source):
        self.cache = cache
        self.source = source

    async def recipients(self, user_id, school_id, query: str = "") -> List[Dict[str, Any]]:
        # Search text is hashed into the key so it can hold any character
        key = self.cache.build_key("destinatarios", user_id, school_id, {"q": query})
        return await self.cache.get_or_compute(
            key, "destinatarios", lambda: self.source.recipients(user_id, school_id, query)
        )

    async def recipient_courses(self, user_id, school_id) -> List[Dict[str, Any]]:
        key = self.cache.build_key("cursos_destinatarios", user_id, school_id)
        return await self.cache.get_or_compute(
            key, "cursos_destinatarios", lambda: self.source.recipient_courses(user_id, school_id)
        )

    async def guardians(self, student_id, school_id) -> List[Dict[str, Any]]:
        key = self.cache.build_key("acudientes", student_id, school_id)
        return await self.cache.get_or_compute(
            key, "acudientes", lambda: self.source.guardians(student_id)
        )

    async def list_messages(self, user_id, school_id, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        filters = filters or {}
        key = self.cache.build_key("lista_mensajes", user_id, school_id, filters)
        return await self.cache.get_or_compute(
            key, "lista_mensajes", lambda: self.source.list_messages(user_id, school_id, filters)
        )

    @fail_open
    def on_message_created(self, user_id, school_id) -> int:
        logger.info(f"Invalidating message cache for user {user_id}")
        return self.cache.invalidate("mensajes", user_id, school_id, MESSAGE_RELATED_TYPES)

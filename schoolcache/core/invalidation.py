"""Cache invalidation for maintaining data consistency after writes.

Invalidation is coarse on purpose: a change for a (type, user, school) scope
drops every cached variant under it, whatever filters were baked into the
rest of the key.
"""
from typing import Iterable
import logging

from schoolcache.core.keys import KEY_DELIMITER, build_key, key_params, type_of
from schoolcache.core.store import TTLStore

logger = logging.getLogger(__name__)


class InvalidationRouter:

    def __init__(self, store: TTLStore):
        self.store = store

    def invalidate(self, primary_type: str, user_id, school_id, related_types: Iterable[str] = ()) -> int:
        """Drop everything cached for each type under the user/school scope."""
        deleted = 0
        for cache_type in [primary_type, *related_types]:
            scope = build_key(cache_type, user_id, school_id)
            count = self.store.delete_by_prefix(scope + KEY_DELIMITER)
            if self.store.delete(scope):
                count += 1
            logger.debug(f"Invalidated {count} cache entries for scope {scope}")
            deleted += count

        logger.info(
            f"Invalidated {deleted} cache entries for {primary_type} - user {user_id}, school {school_id}"
        )
        return deleted

    def invalidate_by_entity_id(self, type_names: Iterable[str], entity_id) -> int:
        """Drop keys of the given types whose params contain ``entity_id``.

        Plain substring match, so ``c1`` also drops ``c10`` keys. Scans every
        key, so cost grows with the store size.
        """
        types = set(type_names)
        entity = str(entity_id)

        def matches(key: str) -> bool:
            return type_of(key) in types and entity in key_params(key)

        deleted = self.store.delete_where(matches)
        logger.info(f"Invalidated {deleted} cache entries referencing {entity} in {sorted(types)}")
        return deleted

    def flush_type(self, type_names: Iterable[str]) -> int:
        types = set(type_names)
        deleted = self.store.delete_where(lambda key: type_of(key) in types)
        logger.info(f"Flushed {deleted} cache entries of types {sorted(types)}")
        return deleted

from collections import Counter
from typing import Any, Dict, Iterable

from schoolcache.core.keys import type_of
from schoolcache.core.store import TTLStore


class StatsReporter:

    def __init__(self, store: TTLStore, configured_types: Iterable[str] = ()):
        self.store = store
        self.configured_types = sorted(configured_types)

    def report(self) -> Dict[str, Any]:
        counters = self.store.stats()
        live_keys = self.store.keys()
        hits = counters["hits"]
        misses = counters["misses"]
        lookups = hits + misses

        return {
            "total_keys": len(live_keys),
            "hits": hits,
            "misses": misses,
            "hit_rate_percent": round(hits / lookups * 100, 2) if lookups else 0,
            "per_type_key_count": dict(Counter(type_of(key) for key in live_keys)),
            "configured_types": self.configured_types,
        }

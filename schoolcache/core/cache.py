import asyncio
import functools
import threading
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set, Tuple, TypeVar
import logging

from pydantic import BaseModel, Field

from schoolcache.core.cache_config import DEFAULT_TTL, CachePolicy, build_policies
from schoolcache.core.invalidation import InvalidationRouter
from schoolcache.core.keys import build_key
from schoolcache.core.scheduler import CacheSweeper
from schoolcache.core.stats import StatsReporter
from schoolcache.core.store import TTLStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class ReadThroughCache:
    """Return the cached value, or compute, store and return it.

    Only successful computations are stored, and only when ``cacheable``
    (if given) accepts the result. With ``single_flight`` on,
    concurrent misses for one key on the same event loop await a single
    computation and all receive its result or its exception. Without it every
    miss computes on its own and the last write wins.
    """

    def __init__(
        self,
        store: TTLStore,
        policies: Optional[Dict[str, CachePolicy]] = None,
        default_ttl: int = DEFAULT_TTL,
        single_flight: bool = True,
    ):
        self.store = store
        self.policies = policies if policies is not None else build_policies()
        self.default_ttl = default_ttl
        self.single_flight = single_flight
        self._in_flight: Dict[str, Tuple[asyncio.AbstractEventLoop, "asyncio.Task"]] = {}
        self._in_flight_lock = threading.Lock()

    def ttl_for(self, type_name: str) -> int:
        policy = self.policies.get(type_name)
        return policy.ttl if policy else self.default_ttl

    async def get_or_compute(
        self,
        key: str,
        type_name: str,
        compute: Callable[[], Awaitable[T]],
        cacheable: Optional[Callable[[T], bool]] = None,
    ) -> T:
        cached = self.store.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug(f"Cache HIT for key: {key}")
            return cached

        logger.debug(f"Cache MISS for key: {key}")
        if not self.single_flight:
            return await self._compute_and_store(key, type_name, compute, cacheable)

        loop = asyncio.get_running_loop()
        with self._in_flight_lock:
            in_flight = self._in_flight.get(key)
            if in_flight is not None and in_flight[0] is loop:
                task = in_flight[1]
                logger.debug(f"Joining in-flight computation for key: {key}")
            else:
                task = loop.create_task(self._compute_and_store(key, type_name, compute, cacheable))
                self._in_flight[key] = (loop, task)
                task.add_done_callback(functools.partial(self._release, key))

        # The computation belongs to no single caller; cancelling one caller
        # leaves it running for the others.
        return await asyncio.shield(task)

    def _release(self, key: str, task: "asyncio.Task") -> None:
        with self._in_flight_lock:
            if self._in_flight.get(key, (None, None))[1] is task:
                del self._in_flight[key]
        if not task.cancelled():
            # Retrieved so a computation every caller abandoned does not warn
            task.exception()

    async def _compute_and_store(
        self,
        key: str,
        type_name: str,
        compute: Callable[[], Awaitable[T]],
        cacheable: Optional[Callable[[T], bool]] = None,
    ) -> T:
        result = await compute()
        if cacheable is not None and not cacheable(result):
            logger.debug(f"Result for key {key} not cached")
            return result
        ttl = self.ttl_for(type_name)
        self.store.set(key, result, ttl)
        logger.debug(f"Cache SET for key: {key} ({ttl}s)")
        return result


class CacheConfig(BaseModel):
    policies: Dict[str, CachePolicy] = Field(default_factory=build_policies)
    max_entries: int = Field(500, ge=1)
    sweep_interval_seconds: int = Field(60, gt=0)
    default_ttl_seconds: int = DEFAULT_TTL
    single_flight: bool = True
    sweeper_enabled: bool = True

    @classmethod
    def from_settings(cls, settings) -> "CacheConfig":
        return cls(
            policies=build_policies(settings.CACHE_TTL_OVERRIDES),
            max_entries=settings.CACHE_MAX_ENTRIES,
            sweep_interval_seconds=settings.CACHE_SWEEP_INTERVAL,
            default_ttl_seconds=settings.CACHE_DEFAULT_TTL,
            single_flight=settings.CACHE_SINGLE_FLIGHT,
            sweeper_enabled=not settings.TESTING,
        )


class CacheHandle:
    """Everything a service needs from the cache, built once per process."""

    def __init__(self, config: CacheConfig, clock: Optional[Callable[[], float]] = None):
        self.config = config
        self.store = TTLStore(max_entries=config.max_entries, clock=clock or time.time)
        self.cache = ReadThroughCache(
            self.store,
            policies=config.policies,
            default_ttl=config.default_ttl_seconds,
            single_flight=config.single_flight,
        )
        self.router = InvalidationRouter(self.store)
        self.stats = StatsReporter(self.store, configured_types=config.policies.keys())
        self.sweeper = CacheSweeper(
            self.store,
            interval_seconds=config.sweep_interval_seconds,
            enabled=config.sweeper_enabled,
        )

    @staticmethod
    def build_key(type_name: str, *params: Any) -> str:
        return build_key(type_name, *params)

    async def get_or_compute(
        self,
        key: str,
        type_name: str,
        compute: Callable[[], Awaitable[T]],
        cacheable: Optional[Callable[[T], bool]] = None,
    ) -> T:
        return await self.cache.get_or_compute(key, type_name, compute, cacheable)

    def invalidate(self, primary_type: str, user_id, school_id, related_types: Iterable[str] = ()) -> int:
        return self.router.invalidate(primary_type, user_id, school_id, related_types)

    def invalidate_by_entity_id(self, type_names: Iterable[str], entity_id) -> int:
        return self.router.invalidate_by_entity_id(type_names, entity_id)

    def flush_type(self, type_names: Iterable[str]) -> int:
        return self.router.flush_type(type_names)

    def flush_all(self) -> int:
        cleared = self.store.flush_all()
        logger.info(f"All cache entries cleared ({cleared} keys)")
        return cleared

    def keys(self) -> Set[str]:
        return self.store.keys()

    def sweep(self) -> int:
        return self.sweeper.run_once()

    def report(self) -> Dict[str, Any]:
        return self.stats.report()

    def start(self):
        self.sweeper.start()

    def close(self):
        self.sweeper.stop()


def init_cache(config: Optional[CacheConfig] = None, clock: Optional[Callable[[], float]] = None) -> CacheHandle:
    if config is None:
        from schoolcache.core.config import settings
        config = CacheConfig.from_settings(settings)

    logger.info(
        f"Using in-memory cache (max {config.max_entries} keys, "
        f"sweep every {config.sweep_interval_seconds}s, single-flight {config.single_flight})"
    )
    return CacheHandle(config, clock=clock)

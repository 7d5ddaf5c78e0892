from fastapi import Request

from schoolcache.core.cache import CacheHandle
from schoolcache.services.cache_service import CacheService


def get_cache(request: Request) -> CacheHandle:
    return request.app.state.cache


def get_cache_service(request: Request) -> CacheService:
    return CacheService(get_cache(request))

from fastapi import APIRouter, Depends, HTTPException

from schoolcache.core.cache import CacheHandle
from schoolcache.endpoints.deps import get_cache, get_cache_service
from schoolcache.schemas.cache import (
    CacheStats,
    EntityInvalidationRequest,
    FlushTypeRequest,
    InvalidateRequest,
    InvalidationResult,
    ManualInvalidationRequest,
)
from schoolcache.schemas.response import APIResponse
from schoolcache.services.cache_service import CacheService

router = APIRouter()

@router.get("/stats", response_model=APIResponse[CacheStats])
async def get_cache_stats(service: CacheService = Depends(get_cache_service)):
    """Hit/miss counters, per-type key counts and the live key list"""
    return APIResponse(message="Cache statistics retrieved", data=service.get_cache_stats())

@router.delete("/clear", response_model=APIResponse[InvalidationResult])
async def clear_cache(service: CacheService = Depends(get_cache_service)):
    """Remove every cache entry"""
    cleared = service.clear_all()
    return APIResponse(message="All cache entries cleared", data=InvalidationResult(deleted=cleared))

@router.post("/sweep", response_model=APIResponse[InvalidationResult])
async def sweep_expired(service: CacheService = Depends(get_cache_service)):
    """Purge expired entries now instead of waiting for the sweeper"""
    removed = service.clear_expired()
    return APIResponse(message=f"Removed {removed} expired cache entries", data=InvalidationResult(deleted=removed))

@router.post("/invalidate", response_model=APIResponse[InvalidationResult])
async def invalidate_cache(body: InvalidateRequest, cache: CacheHandle = Depends(get_cache)):
    """Invalidate a type (and related types) for one user in one school"""
    deleted = cache.invalidate(body.type, body.user_id, body.school_id, body.related_types)
    return APIResponse(
        message=f"Cache {body.type} invalidated for user {body.user_id}",
        data=InvalidationResult(deleted=deleted)
    )

@router.post("/invalidate/manual", response_model=APIResponse[InvalidationResult])
async def manual_invalidation(body: ManualInvalidationRequest, service: CacheService = Depends(get_cache_service)):
    try:
        deleted = service.manual_invalidation(body.type, body.user_id, body.school_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return APIResponse(message=f"Cache {body.type} invalidated", data=InvalidationResult(deleted=deleted))

@router.post("/invalidate/entity", response_model=APIResponse[InvalidationResult])
async def invalidate_entity(body: EntityInvalidationRequest, cache: CacheHandle = Depends(get_cache)):
    """Invalidate every key of the given types that references an entity id"""
    deleted = cache.invalidate_by_entity_id(body.type_names, body.entity_id)
    return APIResponse(
        message=f"Cache invalidated for entity {body.entity_id}",
        data=InvalidationResult(deleted=deleted)
    )

@router.post("/flush-type", response_model=APIResponse[InvalidationResult])
async def flush_type(body: FlushTypeRequest, cache: CacheHandle = Depends(get_cache)):
    deleted = cache.flush_type(body.type_names)
    return APIResponse(
        message=f"Flushed cache types: {', '.join(body.type_names)}",
        data=InvalidationResult(deleted=deleted)
    )

@router.get("/health")
async def cache_health_check(service: CacheService = Depends(get_cache_service)) -> APIResponse:
    is_healthy = service.health_check()
    if not is_healthy:
        raise HTTPException(status_code=503, detail="Cache is unhealthy")
    return APIResponse(message="Cache is healthy", data={"healthy": is_healthy})

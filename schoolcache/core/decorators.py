import functools
import inspect
from typing import Any, Callable, Mapping
import logging

from fastapi import Request, Response

from schoolcache.core.exceptions import InvalidKeyError
from schoolcache.core.keys import build_key, query_param

logger = logging.getLogger(__name__)


def fail_open(func: Callable) -> Callable:
    """Log and swallow errors from cache maintenance called on a request path.

    A broken cache must never fail the request that triggered it, so the
    wrapped call returns ``None`` instead of raising.
    """
    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Cache operation {func.__qualname__} failed: {e}", exc_info=True)
            return None

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Cache operation {func.__qualname__} failed: {e}", exc_info=True)
            return None

    if inspect.iscoroutinefunction(func):
        return async_wrapper
    return sync_wrapper


class _EndpointError(Exception):
    """Carries an exception raised by the route itself through the cache."""

    def __init__(self, error: Exception):
        super().__init__(str(error))
        self.error = error


def cache_endpoint(type_name: str):
    """Serve a GET route from the cache under the ``type_name`` policy.

    The route must accept ``request: Request``. Entries are keyed by type,
    caller and query string; the caller is read from ``user_id`` and
    ``school_id`` route params, else from ``request.state`` where an auth
    layer put them. Anonymous callers share a ``public`` entry. Empty results
    and explicit ``Response`` objects are not stored. Errors raised by the
    route propagate unchanged; a failing cache falls back to calling the route.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            request = kwargs.get('request') or next((arg for arg in args if isinstance(arg, Request)), None)
            if request is None or request.method != "GET":
                return await func(*args, **kwargs)

            try:
                cache = request.app.state.cache
                cache_key = _endpoint_key(type_name, request, kwargs)
            except (AttributeError, InvalidKeyError) as e:
                logger.warning(f"Response for {request.url.path} not cached: {e}")
                return await func(*args, **kwargs)

            computed = False

            async def compute():
                nonlocal computed
                computed = True
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    raise _EndpointError(e) from e

            try:
                result = await cache.get_or_compute(cache_key, type_name, compute, cacheable=_is_cacheable)
            except _EndpointError as e:
                raise e.error from None
            except Exception as e:
                logger.error(f"Cache lookup failed for key {cache_key}: {e}", exc_info=True)
                return await func(*args, **kwargs)

            request.state.cache_status = "MISS" if computed else "HIT"
            return result

        return wrapper

    return decorator


def _endpoint_key(type_name: str, request: Request, kwargs: Mapping[str, Any]) -> str:
    user_id = kwargs.get('user_id') or getattr(request.state, 'user_id', None)
    school_id = kwargs.get('school_id') or getattr(request.state, 'school_id', None)
    query = query_param(sorted(request.query_params.multi_items()))
    if user_id is None or school_id is None:
        return build_key(type_name, "public", query)
    return build_key(type_name, user_id, school_id, query)


def _is_cacheable(result: Any) -> bool:
    if result is None or isinstance(result, Response):
        return False
    if isinstance(result, (str, bytes, list, dict)):
        return len(result) > 0
    return True

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from schoolcache.core.cache import CacheConfig, init_cache
from schoolcache.core.config import settings
from schoolcache.core.exceptions import InvalidKeyError
from schoolcache.core.logging import configure_logging
from schoolcache.endpoints import cache_admin
from schoolcache.middleware.exceptions import (
    global_exception_handler,
    invalid_key_exception_handler,
    validation_exception_handler,
)
from schoolcache.middleware.logging import RequestLoggingMiddleware


def create_app(config: CacheConfig = None, clock=None) -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)

    app.state.cache = init_cache(config, clock=clock)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(StarletteHTTPException, global_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidKeyError, invalid_key_exception_handler)

    app.include_router(cache_admin.router, prefix="/cache", tags=["Cache"])

    @app.on_event("startup")
    async def startup_event():
        app.state.cache.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.cache.close()

    return app


if __name__ == "__main__":
    import uvicorn
    configure_logging()
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)

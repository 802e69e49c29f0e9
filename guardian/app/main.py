from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from guardian.app.api.ai import router as ai_router
from guardian.app.core.cache import RedisCache, get_cache
from guardian.app.core.config import settings
from guardian.app.core.http_client import init_http_client
from guardian.app.core.logging import get_logger, setup_logging
from guardian.app.core.options import RedisOptionsStore, get_options_store
from guardian.app.exceptions import AuthenticationError, GatewayException
from guardian.app.middleware.request_id import RequestIdMiddleware, get_request_id
from guardian.app.services.dispatcher import get_dispatcher


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Create the shared HTTP client on startup and release stores on shutdown."""
        async with init_http_client() as http_client:
            get_dispatcher(http_client)
            logger.info(
                "Application startup complete",
                extra={
                    "environment": settings.environment,
                    "redis_enabled": settings.redis_enabled,
                    "default_provider": settings.default_provider,
                },
            )
            yield {"http_client": http_client}

        cache = get_cache()
        if isinstance(cache, RedisCache):
            await cache.close()
        options = get_options_store()
        if isinstance(options, RedisOptionsStore):
            await options.close()

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="AI Guardian Gateway",
        description="AI-call gateway with provider detection, response caching and a daily free-tier quota",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIdMiddleware)
    app.include_router(ai_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check with cache and options-store status."""
        health_status: dict[str, Any] = {"status": "ok", "components": {}}

        try:
            cache = get_cache()
            test_key = "_health_check_test"
            await cache.set(test_key, b"ping", ttl=5)
            value = await cache.get(test_key)
            await cache.delete(test_key)
            cache_type = "redis" if isinstance(cache, RedisCache) else "memory"
            if value == b"ping":
                health_status["components"]["cache"] = {"status": "ok", "type": cache_type}
            else:
                health_status["status"] = "degraded"
                health_status["components"]["cache"] = {"status": "error", "error": "Unexpected value"}
        except Exception as e:
            health_status["status"] = "degraded"
            health_status["components"]["cache"] = {"status": "error", "error": str(e)[:100]}

        options_ok = await get_options_store().health_check()
        if not options_ok:
            health_status["status"] = "degraded"
        health_status["components"]["options"] = {"status": "ok" if options_ok else "error"}

        return health_status

    @app.exception_handler(AuthenticationError)
    async def auth_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
        """Handle AuthenticationError and return HTTP 401 response."""
        return JSONResponse(
            status_code=401,
            content={"success": False, "error": "authentication_failed", "message": exc.detail},
        )

    @app.exception_handler(GatewayException)
    async def gateway_error_handler(request: Request, exc: GatewayException) -> JSONResponse:
        """Map gateway exceptions (e.g. an empty prompt) to their status codes."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback to the client; full details are logged.
        """
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            },
        )

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": str(exc),
                    "exception_type": type(exc).__name__,
                    "request_id": request_id,
                },
            )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "Internal server error",
                "request_id": request_id,
            },
        )

    return app


# Create the application instance
app = create_app()

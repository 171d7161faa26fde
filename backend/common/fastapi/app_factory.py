"""
Common FastAPI application factory with standard middleware and configuration.

This module provides a factory function for creating FastAPI applications with
consistent configuration, middleware, and error handling across all services.

Features:
    - Automatic logging setup
    - CORS configuration (environment-aware)
    - Request timing middleware
    - Tenant error handling (APIError -> {"error": message} with its status code)
    - Global exception handling
    - Health check endpoints
    - Optional lifespan for startup/shutdown of shared resources

Endpoints:
    - GET /: Root endpoint with service information
    - GET /health: Health check endpoint
    - GET /docs: Swagger UI documentation
    - GET /redoc: ReDoc documentation

Usage:
    ```python
    from common.fastapi import create_fastapi_app

    app = create_fastapi_app(
        service_name="tenant-service",
        description="Tenant database lifecycle API",
        api_router=api_router,
        lifespan=lifespan,
    )
    ```
"""

from collections.abc import Callable
import time
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

from common.config import BaseServiceSettings, get_settings
from common.exceptions import APIError
from common.logging import setup_logging


def create_fastapi_app(
    service_name: str,
    description: str,
    api_router: APIRouter | None = None,
    root_path: str = "",
    lifespan: Callable[[FastAPI], Any] | None = None,
    settings: BaseServiceSettings | None = None,
) -> FastAPI:
    """
    Create a FastAPI application with standardized configuration and middleware.

    Args:
        service_name: Name of the service (e.g., "tenant-service"). Used to load
            service-specific settings and configure logging.
        description: Human-readable description used in the OpenAPI documentation.
        api_router: Optional APIRouter, included with the API_V1_STR prefix
            (default: "/api/v1").
        root_path: Optional root path for reverse proxy scenarios. Ignored in DEV.
        lifespan: Optional lifespan context manager factory, used to open shared
            resources at startup and close them at shutdown.
        settings: Optional settings instance. Loaded with get_settings(service_name)
            when omitted.

    Returns:
        Fully configured FastAPI application instance ready to run.

    Note:
        - APIError subclasses (every tenant error kind) are rendered as
          {"error": message} with their own status code; the internal error is
          logged, never returned
        - All other unhandled exceptions return a generic 500 message
    """

    # Setup logging first
    setup_logging(service_name)

    if settings is None:
        settings = get_settings(service_name)

    # In development, root_path should be empty as we are not behind a reverse proxy
    effective_root_path = root_path if settings.ENVIRONMENT != "DEV" else ""

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        description=description,
        openapi_url="/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        root_path=effective_root_path,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Configure CORS
    if settings.ENVIRONMENT == "production":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        # Note: allow_credentials=True is incompatible with allow_origins=["*"]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[
                "http://localhost:3000",
                "http://localhost:3001",
                "http://127.0.0.1:3000",
                "http://127.0.0.1:3001",
            ],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def add_process_time_header(
        request: Request, call_next: Callable[[Request], Any]
    ) -> Response:
        """Add process time header to responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        logger.info(
            f"{request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s"
        )
        return response

    if api_router:
        app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "status": "healthy",
            "timestamp": time.time(),
        }

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint."""
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "message": f"{settings.SERVICE_NAME} is running",
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        if exc.is_client_error:
            logger.info(
                f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}"
            )
        else:
            logger.error(
                f"{type(exc).__name__} in {request.method} {request.url.path}: "
                f"{exc.internal_error or exc.message}"
            )
        headers = {"Retry-After": "5"} if getattr(exc, "retryable", False) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
            headers=headers,
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            f"Unhandled exception in {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "An error occurred while processing your request. Please try again later."
            },
        )

    return app

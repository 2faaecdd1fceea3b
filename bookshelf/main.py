"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() function returns configured app
   - Easier to test (can create multiple instances)

2. Lifespan Events
   - startup: connect the book cache (Redis) and keep it on app.state
   - shutdown: close it again

3. Middleware Stack
   - CORS: Allow the single-page front end to call the API
   - Rate limiting (slowapi)
   - Request size ceiling (413 above settings.max_request_bytes, counted
     as the body arrives, so chunked requests are limited too)

4. Exception Handlers
   - Domain errors (BookshelfError) -> their status code and kind
   - Validation errors -> 400
   - Database and unexpected errors -> 500, logged, no internals leaked

Every error body has the same shape:
    {"success": false, "error": "<kind>", "detail": "<message>"}
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from bookshelf.config import get_settings
from bookshelf.exceptions import BookshelfError, PayloadTooLargeError
from bookshelf.routers import books_router, genres_router, users_router
from bookshelf.services.cache import BookCache
from bookshelf.services.rate_limiter import limiter, rate_limit_exceeded_handler

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    kind: str,
    detail: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": kind, "detail": detail},
        headers=headers,
    )


def format_validation_errors(errors: list[dict]) -> str:
    """Flatten pydantic errors to "field: message; field: message"."""
    messages = []
    for error in errors:
        location = ".".join(
            str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")
        )
        message = error.get("msg", "Invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request data"


def request_too_large_detail(limit: int) -> str:
    if limit >= 1024 * 1024:
        return f"Request body exceeds the {limit // (1024 * 1024)}MB limit"
    return f"Request body exceeds the {limit} byte limit"


# =============================================================================
# Request Size Limit
# =============================================================================
class RequestSizeLimitMiddleware:
    """
    Reject request bodies larger than settings.max_request_bytes with 413.

    A declared Content-Length is checked before the app runs. Bodies
    without one (Transfer-Encoding: chunked) are counted as they are
    received: once the count passes the limit, receive() raises
    PayloadTooLargeError, whatever response the app produced is dropped,
    and the 413 error is sent instead.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = settings.max_request_bytes

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > limit:
            await self._reject(scope, receive, send, limit)
            return

        received = 0
        exceeded = False
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    exceeded = True
                    raise PayloadTooLargeError(request_too_large_detail(limit))
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            if exceeded and not response_started:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except PayloadTooLargeError:
            if not exceeded or response_started:
                raise

        if exceeded and not response_started:
            logger.warning(
                f"Rejected {scope['method']} {scope['path']}: body passed {limit} bytes"
            )
            await self._reject(scope, receive, send, limit)

    @staticmethod
    async def _reject(scope: Scope, receive: Receive, send: Send, limit: int) -> None:
        response = error_response(413, "payload_too_large", request_too_large_detail(limit))
        await response(scope, receive, send)


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Code before yield: Runs on startup
    Code after yield: Runs on shutdown
    """
    # ----- STARTUP -----
    logger.info(f"Starting {settings.app_name} ({settings.environment})...")
    logger.info(f"API version: {settings.api_version}")

    app.state.book_cache = BookCache.from_settings()
    if app.state.book_cache.enabled:
        logger.info("Redis caching enabled")
    else:
        logger.warning("Redis unavailable or disabled - caching disabled")

    yield  # Application runs here

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {settings.app_name}...")
    app.state.book_cache.close()


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## Bookshelf API

REST backend for cataloguing a personal book collection.

### Features
- **Users**: Registration, login, password reset, avatars, profile
- **Books**: Search, filter, sort and paginate; owners manage their own books
- **Genres**: Shared reference data for books

### Authentication
Protected endpoints need an `Authorization: Bearer <token>` header.
Tokens are returned by `/api/users/register` and `/api/users/login`.
        """,
        version=settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    # The limiter decorators look it up on app.state
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Request Size Limit
    # -------------------------------------------------------------------------
    # Added last so it wraps everything else
    app.add_middleware(RequestSizeLimitMiddleware)

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(BookshelfError)
    async def bookshelf_exception_handler(
        request: Request,
        exc: BookshelfError,
    ) -> JSONResponse:
        """Map domain errors to their HTTP status and stable kind."""
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return error_response(exc.status_code, exc.kind, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        return error_response(400, "validation_error", format_validation_errors(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        kind = "not_found" if exc.status_code == 404 else "http_error"
        return error_response(exc.status_code, kind, str(exc.detail), exc.headers)

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ) -> JSONResponse:
        """
        Handle SQLAlchemy database errors.

        Logs the actual error while hiding details from clients.
        """
        logger.error(f"Database error: {exc}", exc_info=True)
        return error_response(
            500,
            "database_error",
            "A database error occurred. Please try again later.",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """
        Catch-all exception handler.

        In debug mode the exception text is returned to help development.
        """
        logger.error(f"Unhandled error: {exc}", exc_info=True)

        detail = str(exc) if settings.debug else "An internal error occurred."
        return error_response(500, "internal_error", detail)

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    api_prefix = "/api"

    app.include_router(users_router, prefix=api_prefix)
    app.include_router(books_router, prefix=api_prefix)
    app.include_router(genres_router, prefix=api_prefix)

    # Stored covers, e.g. /uploads/books/cover-3f2a9c.png
    app.mount(
        "/uploads/books",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="covers",
    )

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
        description="Check if the API is running and healthy.",
    )
    async def health_check(request: Request) -> dict:
        """
        Health check endpoint.

        Used by load balancers and container health checks.
        """
        book_cache = getattr(request.app.state, "book_cache", None)

        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.api_version,
            "environment": settings.environment,
            "cache": book_cache.stats() if book_cache else {"status": "disconnected"},
            "rate_limiting": {
                "enabled": settings.rate_limit_enabled,
                "default_limit": settings.rate_limit_default,
            },
        }

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
        description="Welcome message and API information.",
    )
    async def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn bookshelf.main:app
app = create_app()


# =============================================================================
# Development Server
# =============================================================================
# python -m bookshelf.main
# In production, use: uvicorn bookshelf.main:app --host 0.0.0.0 --port 5000

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bookshelf.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

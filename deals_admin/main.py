"""FastAPI application entry point.

Deals Admin API - review workflow for retailer applications and deals.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deals_admin.errors import ApprovalError
from deals_admin.routes import api_router
from deals_admin.schemas import ErrorDetail, ErrorResponse
from deals_admin.services.approval import ApprovalStateMachine
from deals_admin.services.auth import SupabaseAuthClient
from deals_admin.services.catalog import CatalogService
from deals_admin.services.gateway import ActionGateway
from deals_admin.services.review_queries import ReviewQueryService
from deals_admin.settings import Settings, get_settings
from deals_admin.stores.postgres import Database
from deals_admin.stores.redis import Cache

logger = logging.getLogger("uvicorn.error")


def build_gateway(db: Database, cache: Cache, settings: Settings) -> ActionGateway:
    """Wire the review services onto one store pair."""
    state_machine = ApprovalStateMachine(
        db,
        cache,
        rejection_reason_min_length=settings.rejection_reason_min_length,
    )
    queries = ReviewQueryService(
        db,
        cache,
        approval_rate_window_days=settings.approval_rate_window_days,
        stats_cache_ttl=settings.stats_cache_ttl,
    )
    return ActionGateway(
        state_machine,
        queries,
        CatalogService(db, state_machine),
        recently_cleared_window_hours=settings.recently_cleared_window_hours,
        recently_cleared_limit=settings.recently_cleared_limit,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the stores and services on startup and releases them on shutdown.
    """
    settings = get_settings()

    db = Database.from_url(settings.async_database_url, echo=settings.debug)
    try:
        await db.ping()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # Redis is optional; without it the stats cache is a no-op
    cache = Cache()
    if settings.redis_enabled:
        try:
            cache = await Cache.connect(settings.redis_url)
        except Exception:
            logger.exception("Redis init failed")
    if not cache.enabled:
        logger.info("Stats cache disabled")

    app.state.db = db
    app.state.cache = cache
    app.state.auth_client = SupabaseAuthClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        timeout=settings.auth_timeout_seconds,
    )
    app.state.gateway = build_gateway(db, cache, settings)

    yield

    # Shutdown
    await cache.close()
    await db.close()


def _error_body(code: str, message: str, detail: dict | None = None) -> dict:
    return ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Admin review API for retailer applications and deals",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ApprovalError)
    async def approval_error_handler(request: Request, exc: ApprovalError) -> JSONResponse:
        """Render workflow errors in the structured error format."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed bodies and query params use the same 400 shape as field validation."""
        errors: dict[str, str] = {}
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
            errors[".".join(loc) or "body"] = err.get("msg", "Invalid value")
        return JSONResponse(
            status_code=400,
            content=_error_body("VALIDATION_FAILED", "Validation failed", {"errors": errors}),
        )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "INTERNAL_ERROR",
                str(exc) if settings.debug else "Internal server error",
            ),
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "deals_admin.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

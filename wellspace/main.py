"""Wellspace API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wellspace.ai import GenerativeClient
from wellspace.chat import ChatRepository, ChatService, InsightsService, insights_router
from wellspace.chat import router as chat_router
from wellspace.community import CommunityService
from wellspace.community import router as community_router
from wellspace.community.pending import PendingSubmissionStore
from wellspace.community.repository import CommunityRepository
from wellspace.config import get_settings
from wellspace.core.context import get_request_id
from wellspace.core.database import init_async_cassandra, shutdown_async_cassandra
from wellspace.core.logging import configure_structlog, get_logger
from wellspace.core.middleware import RequestContextMiddleware
from wellspace.core.redis import init_redis, shutdown_redis
from wellspace.health import router as health_router
from wellspace.journal import JournalService, MoodScorer
from wellspace.journal import router as journal_router
from wellspace.moderation import ModerationClassifier, SupportMessageGenerator


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)

# 5xx messages that are written for users and safe to return as-is
_PUBLIC_5XX = frozenset({status.HTTP_503_SERVICE_UNAVAILABLE})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - pending confirmations fall back to memory)
    redis_client = None
    try:
        redis_client = await init_redis(settings)
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - pending confirmations kept in memory",
        )

    ai_client = GenerativeClient(settings)
    if not ai_client.is_configured:
        logger.warning(
            "ai_not_configured",
            message="Moderation will fail open and mood scores default to neutral",
        )

    # Initialize Cassandra (async)
    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        app.state.community_service = CommunityService(
            repository=CommunityRepository(session, settings.cassandra_keyspace),
            classifier=ModerationClassifier(ai_client),
            support=SupportMessageGenerator(ai_client),
            pending=PendingSubmissionStore(
                redis_client, settings.pending_submission_ttl_seconds
            ),
            anonymous_name=settings.anonymous_display_name,
        )
        logger.info("community_service_initialized", redis_enabled=redis_client is not None)

        chat_repository = ChatRepository(session, settings.cassandra_keyspace)
        insights_service = InsightsService(
            repository=chat_repository,
            client=ai_client,
            summary_interval=settings.chat_summary_interval,
        )
        app.state.insights_service = insights_service
        app.state.chat_service = ChatService(
            repository=chat_repository,
            client=ai_client,
            insights=insights_service,
            history_limit=settings.chat_history_limit,
            max_retries=settings.chat_max_retries,
            retry_delay=settings.chat_retry_delay_seconds,
        )
        logger.info("chat_service_initialized")

        app.state.journal_service = JournalService(
            session=session,
            keyspace=settings.cassandra_keyspace,
            scorer=MoodScorer(ai_client),
            insights=insights_service,
        )
        logger.info("journal_service_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False keeps Starlette from rendering tracebacks in responses
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Wellspace API - moderated community, journal and chat companion",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        quiet_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        public = (
            exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            or exc.status_code in _PUBLIC_5XX
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail) if public else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            error_count=len(exc.errors()),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; details are logged, never returned."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(community_router)
    app.include_router(journal_router)
    app.include_router(chat_router)
    app.include_router(insights_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Wellspace API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()

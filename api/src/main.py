"""Wiki Comments API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.accounts.service import AccountModerationService
from src.accounts.store import CassandraAccountStore
from src.admin import router as admin_router
from src.comments.abuse import AbuseDetector
from src.comments.admission import AdmissionGuard
from src.comments.router import router as comments_router
from src.comments.service import CommentService
from src.comments.store import CassandraCommentStore
from src.config import Settings, get_settings
from src.core.clock import AsyncioTicker, SystemClock
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.email.service import EmailService
from src.health import router as health_router
from src.notifications.fanout import NotificationFanout
from src.notifications.router import router as notifications_router
from src.notifications.scheduler import DigestScheduler
from src.notifications.store import CassandraNotificationStore, CassandraSettingsStore
from src.pages.directory import CassandraPageDirectory
from src.pages.router import router as pages_router


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def wire_services(app: FastAPI, session: Any, redis_client: Any, settings: Settings) -> None:
    """Build stores and services on top of a Cassandra session.

    Everything the routers need ends up on ``app.state``.
    """
    keyspace = settings.cassandra_keyspace
    clock = SystemClock()

    account_store = CassandraAccountStore(session, keyspace)
    comment_store = CassandraCommentStore(session, keyspace)
    notification_store = CassandraNotificationStore(session, keyspace)
    settings_store = CassandraSettingsStore(session, keyspace, clock)
    page_directory = CassandraPageDirectory(session, keyspace)

    fanout = NotificationFanout(
        notification_store=notification_store,
        settings_store=settings_store,
        account_store=account_store,
        comment_store=comment_store,
        page_directory=page_directory,
        clock=clock,
        redis=redis_client,
        preview_length=settings.comment_preview_length,
    )

    app.state.account_store = account_store
    app.state.notification_store = notification_store
    app.state.settings_store = settings_store
    app.state.page_directory = page_directory
    app.state.fanout = fanout
    app.state.moderation_service = AccountModerationService(account_store)
    app.state.comment_service = CommentService(
        admission_guard=AdmissionGuard(
            account_store,
            comment_store,
            throttle_seconds=settings.comment_throttle_seconds,
        ),
        abuse_detector=AbuseDetector(
            account_store,
            comment_store,
            window_seconds=settings.abuse_window_seconds,
            distinct_accounts_threshold=settings.abuse_distinct_accounts_threshold,
            freeze_hours=settings.abuse_freeze_hours,
        ),
        fanout=fanout,
        comment_store=comment_store,
        account_store=account_store,
        clock=clock,
    )
    logger.info("comment_pipeline_initialized", redis_enabled=redis_client is not None)


def build_digest_scheduler(app: FastAPI, settings: Settings) -> DigestScheduler:
    """Create the email digest worker over the wired stores."""
    email_service = EmailService(
        credentials_path=settings.email_credentials_path,
        sender_address=settings.email_sender_address,
        sender_name=settings.email_sender_name,
        timeout_seconds=settings.email_send_timeout_seconds,
    )
    return DigestScheduler(
        notification_store=app.state.notification_store,
        settings_store=app.state.settings_store,
        account_store=app.state.account_store,
        mail_sender=email_service,
        page_directory=app.state.page_directory,
        clock=SystemClock(),
        ticker=AsyncioTicker(),
        base_url=settings.app_base_url,
        tick_seconds=settings.digest_tick_seconds,
        error_backoff_seconds=settings.digest_error_backoff_seconds,
        send_timeout_seconds=settings.email_send_timeout_seconds,
    )


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

    # Redis is optional: without it notifications are only persisted
    redis_client = None
    try:
        redis_client = await init_redis()
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - real-time notifications disabled",
        )

    try:
        session = await init_async_cassandra()
        wire_services(app, session, redis_client, settings)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    scheduler: DigestScheduler | None = None
    if settings.email_configured and settings.digest_enabled:
        if hasattr(app.state, "notification_store"):
            scheduler = build_digest_scheduler(app, settings)
            await scheduler.start()
            app.state.digest_scheduler = scheduler
        else:
            logger.warning("digest_scheduler_skipped", reason="no_database")

    yield

    logger.info("shutting_down_application")
    if scheduler is not None:
        await scheduler.stop()
    await shutdown_redis()
    await shutdown_async_cassandra()


def _error_body(detail: Any) -> tuple[str | None, str]:
    """Split an HTTPException detail into (code, message)."""
    if isinstance(detail, dict):
        return detail.get("code"), str(detail.get("message", ""))
    return None, str(detail)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False keeps Starlette from rendering stack traces in responses
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Comment admission, abuse detection and notification API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
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
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        code, message = _error_body(exc.detail)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            code=code,
            detail=message,
            path=request.url.path,
            method=request.method,
        )

        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            code, message = None, "Internal server error"

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "code": code,
                "message": message,
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with field-level details."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "code": "validation_error",
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
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
        """Catch-all handler. Details are logged, never returned."""
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
                "code": "internal_error",
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(comments_router)
    app.include_router(notifications_router)
    app.include_router(pages_router)
    app.include_router(admin_router)

    return app


app = create_app()
